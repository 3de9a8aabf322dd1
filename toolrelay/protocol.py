"""Wire format of the chat service.

Request bodies are built here, response bodies are parsed and validated here,
and the typed outcome of a round-trip is defined here. Messages stay plain
dicts because that is what goes back on the wire; tool calls are validated
with pydantic at the point where the client acts on them.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import config
from .errors import ParseError

OK = "ok"
SEND_ERROR = "send_error"
PARSE_ERROR = "parse_error"


# -------------------------------------------------------------
# Request building
# -------------------------------------------------------------
def build_chat_body(model: str, messages: Sequence[Dict[str, Any]], options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Assemble the /api/chat request body for a single turn.

    keep_alive and stream get defaults; every key in ``options`` is merged in
    as given and wins over the defaults. ``options`` itself is left untouched.
    """
    options = dict(options or {})
    body: Dict[str, Any] = {
        "model": model,
        "messages": list(messages),
        "keep_alive": options.pop("keep_alive", config.DEFAULT_KEEP_ALIVE),
        "stream": options.pop("stream", False),
    }
    body.update(options)
    return body


def encode_body(body: Mapping[str, Any]) -> bytes:
    return json.dumps(body).encode("utf-8")


# -------------------------------------------------------------
# Response parsing
# -------------------------------------------------------------
def parse_response(raw: bytes) -> Dict[str, Any]:
    """Decode a response body into a JSON object or raise ParseError."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"response is not valid UTF-8: {exc}") from exc

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"response is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ParseError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def extract_message(payload: Mapping[str, Any]) -> Dict[str, Any]:
    message = payload.get("message")
    return message if isinstance(message, dict) else {}


# -------------------------------------------------------------
# Tool calls
# -------------------------------------------------------------
class ToolFunction(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value):
        return value if isinstance(value, str) else ""

    @field_validator("arguments", mode="before")
    @classmethod
    def _coerce_arguments(cls, value):
        # only JSON objects are valid arguments
        return value if isinstance(value, dict) else {}


class ToolCall(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    function: ToolFunction = Field(default_factory=ToolFunction)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("function", mode="before")
    @classmethod
    def _coerce_function(cls, value):
        return value if isinstance(value, dict) else {}

    @property
    def call_id(self) -> Optional[str]:
        # the id is echoed as sent; only a missing key gets a name-based one
        if "id" in self.model_fields_set:
            return self.id
        return f"tool_{self.function.name}"


def pending_tool_calls(message: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Return the raw tool call dicts of an assistant message.

    A single dict is treated as a one-element list; anything that is not a
    dict is dropped.
    """
    raw = message.get("tool_calls")
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [call for call in raw if isinstance(call, dict)]


def strip_function_index(call: Dict[str, Any]) -> Dict[str, Any]:
    """Remove ``function.index`` from a raw tool call, in place.

    Some servers emit it as a float, which the chat endpoint then rejects
    when the call is echoed back.
    """
    fn = call.get("function")
    if isinstance(fn, dict):
        fn.pop("index", None)
    return call


def make_tool_message(tool_call_id: str, content: str, name: str = "") -> Dict[str, Any]:
    message = {"role": "tool", "content": content, "tool_call_id": tool_call_id}
    if name:
        message["name"] = name
    return message


# -------------------------------------------------------------
# Outcomes
# -------------------------------------------------------------
@dataclass(frozen=True)
class ChatOutcome:
    """Result of a chat round-trip, or of a tool-resolving exchange.

    ``value`` is what the plain ``chat``/``chat_with_tools`` calls return:
    the conversation when the full message list was requested, the reply
    message otherwise, and None when the exchange failed.
    """

    status: str
    message: Optional[Dict[str, Any]] = None
    conversation: Optional[List[Dict[str, Any]]] = None
    error: Optional[Exception] = None
    tool_reply: Optional[Dict[str, Any]] = None
    tool_messages: Tuple[Dict[str, Any], ...] = ()
    rounds: int = 0

    @property
    def ok(self) -> bool:
        return self.status == OK

    @property
    def used_tools(self) -> bool:
        return self.tool_reply is not None

    def transcript(self, messages: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """``messages`` followed by the tool round (if any) and the final reply."""
        exchange = list(messages)
        if self.tool_reply is not None:
            exchange.append(self.tool_reply)
            exchange.extend(self.tool_messages)
        if self.message is not None:
            exchange.append(self.message)
        return exchange

    @property
    def value(self):
        if not self.ok:
            return None
        if self.conversation is not None:
            return self.conversation
        return self.message

    @classmethod
    def success(cls, messages: Sequence[Dict[str, Any]], message: Dict[str, Any], full: bool, rounds: int = 1) -> "ChatOutcome":
        conversation = list(messages) + [message] if full else None
        return cls(OK, message=message, conversation=conversation, rounds=rounds)

    @classmethod
    def failure(cls, status: str, error: Exception, rounds: int = 1) -> "ChatOutcome":
        return cls(status, error=error, rounds=rounds)
