import pytest

from toolrelay.errors import ParseError
from toolrelay.protocol import (
    OK,
    PARSE_ERROR,
    ChatOutcome,
    ToolCall,
    build_chat_body,
    extract_message,
    make_tool_message,
    parse_response,
    pending_tool_calls,
    strip_function_index,
)

MESSAGES = [{"role": "user", "content": "hi"}]


# -------------------------------------------------------------
# build_chat_body
# -------------------------------------------------------------
def test_build_chat_body_applies_defaults():
    body = build_chat_body("llama3", MESSAGES)
    assert body == {"model": "llama3", "messages": MESSAGES, "keep_alive": 5, "stream": False}


def test_build_chat_body_options_override_defaults_and_merge_extras():
    body = build_chat_body("llama3", MESSAGES, {"keep_alive": "10m", "stream": True, "format": "json", "options": {"temperature": 0}})
    assert body["keep_alive"] == "10m"
    assert body["stream"] is True
    assert body["format"] == "json"
    assert body["options"] == {"temperature": 0}


def test_build_chat_body_leaves_options_untouched():
    options = {"keep_alive": 0, "tools": []}
    build_chat_body("llama3", MESSAGES, options)
    assert options == {"keep_alive": 0, "tools": []}


def test_build_chat_body_copies_message_list():
    body = build_chat_body("llama3", MESSAGES)
    body["messages"].append({"role": "user", "content": "more"})
    assert len(MESSAGES) == 1


# -------------------------------------------------------------
# parse_response
# -------------------------------------------------------------
def test_parse_response_returns_mapping():
    assert parse_response(b'{"message": {"role": "assistant", "content": "ok"}}') == {
        "message": {"role": "assistant", "content": "ok"}
    }


@pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b'"text"', b"42", b"", b"\xff\xfe{}"])
def test_parse_response_rejects_non_objects(raw):
    with pytest.raises(ParseError):
        parse_response(raw)


def test_extract_message_defaults_to_empty_dict():
    assert extract_message({}) == {}
    assert extract_message({"message": "oops"}) == {}
    assert extract_message({"message": {"content": "x"}}) == {"content": "x"}


# -------------------------------------------------------------
# tool calls
# -------------------------------------------------------------
def test_make_tool_message_omits_empty_name():
    message = make_tool_message("call-1", "22C", "")
    assert message == {"role": "tool", "content": "22C", "tool_call_id": "call-1"}
    assert "name" not in message


def test_make_tool_message_includes_name():
    assert make_tool_message("call-1", "22C", "foo")["name"] == "foo"


def test_tool_call_coerces_non_object_arguments():
    call = ToolCall.model_validate({"id": "1", "function": {"name": "f", "arguments": "[1, 2]"}})
    assert call.function.arguments == {}


def test_tool_call_tolerates_missing_fields():
    call = ToolCall.model_validate({"function": None, "id": 7})
    assert call.id == "7"
    assert call.function.name == ""
    assert call.function.arguments == {}


def test_tool_call_id_falls_back_to_function_name():
    call = ToolCall.model_validate({"function": {"name": "get_weather", "arguments": {}}})
    assert call.call_id == "tool_get_weather"



def test_tool_call_id_is_echoed_when_present_even_if_empty():
    empty = ToolCall.model_validate({"id": "", "function": {"name": "get_weather"}})
    null = ToolCall.model_validate({"id": None, "function": {"name": "get_weather"}})

    assert empty.call_id == ""
    assert null.call_id is None


def test_strip_function_index_removes_float_index():
    raw = {"id": "1", "function": {"index": 0.0, "name": "f", "arguments": {}}}
    strip_function_index(raw)
    assert raw == {"id": "1", "function": {"name": "f", "arguments": {}}}


def test_pending_tool_calls_normalizes_shapes():
    single = {"function": {"name": "f"}}
    assert pending_tool_calls({"tool_calls": single}) == [single]
    assert pending_tool_calls({"tool_calls": [single, "junk", 3]}) == [single]
    assert pending_tool_calls({"tool_calls": None}) == []
    assert pending_tool_calls({}) == []


# -------------------------------------------------------------
# ChatOutcome
# -------------------------------------------------------------
def test_outcome_value_depends_on_full_flag():
    reply = {"role": "assistant", "content": "ok"}
    short = ChatOutcome.success(MESSAGES, reply, False)
    full = ChatOutcome.success(MESSAGES, reply, True)

    assert short.status == OK and short.value == reply
    assert full.value == MESSAGES + [reply]
    assert full.value is not MESSAGES


def test_failed_outcome_has_no_value():
    outcome = ChatOutcome.failure(PARSE_ERROR, ParseError("bad"))
    assert not outcome.ok
    assert outcome.value is None
    assert not outcome.used_tools
