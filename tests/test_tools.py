import json

import pytest

from toolrelay.agent import ToolBox, describe_function, load_tools


def test_register_builds_definition_from_signature():
    def search(query: str, limit: int = 5, exact: bool = False):
        """Search the notes.

        Longer explanation that is not part of the description.
        """
        return []

    definition = describe_function("search", search)

    assert definition == {
        "type": "function",
        "function": {
            "name": "search",
            "description": "Search the notes.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "limit": {"type": "integer"},
                    "exact": {"type": "boolean"},
                },
                "required": ["query"],
            },
        },
    }


def test_explicit_definition_is_kept_verbatim():
    toolbox = ToolBox()
    definition = {"type": "function", "function": {"name": "ping", "parameters": {}}}
    toolbox.register("ping", lambda: "pong", definition)

    assert toolbox.definitions == [definition]
    assert "ping" in toolbox and len(toolbox) == 1


def test_toolbox_dispatches_by_name():
    toolbox = ToolBox()

    @toolbox.tool(name="add")
    def add_numbers(a: int, b: int) -> int:
        return a + b

    @toolbox.tool()
    def greet(name: str) -> str:
        return f"Hello {name}"

    assert toolbox.names == ["add", "greet"]
    assert toolbox("greet", {"name": "Ada"}) == "Hello Ada"
    assert json.loads(toolbox("add", {"a": 2, "b": 3})) == {"result": 5}


def test_unknown_tool_returns_message():
    assert ToolBox()("missing", {}) == "Unknown tool: missing"


def test_tool_exceptions_propagate():
    toolbox = ToolBox()

    @toolbox.tool()
    def broken():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        toolbox("broken", {})


def test_load_tools_reads_json_array(tmp_path):
    tools = [{"type": "function", "function": {"name": "read_file"}}]
    path = tmp_path / "tools.json"
    path.write_text(json.dumps(tools), encoding="utf-8")

    assert load_tools(path) == tools
    assert load_tools(str(path)) == tools


def test_load_tools_rejects_non_array(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text('{"name": "x"}', encoding="utf-8")

    with pytest.raises(ValueError):
        load_tools(path)
