import inspect
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

_JSON_TYPES = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}


def load_tools(tools_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load a JSON array of tool definitions used for LLM tool calling."""
    path = Path(tools_path)
    with path.open("r", encoding="utf-8") as f:
        tools = json.load(f)
    if not isinstance(tools, list):
        raise ValueError(f"Expected a JSON array of tool definitions in {path}")
    return tools


def describe_function(name: str, func: Callable, description: Optional[str] = None) -> Dict[str, Any]:
    """Build a function tool definition from a Python signature.

    Only simple annotations are mapped (str, int, float, bool, dict, list);
    anything else is described as a string. Parameters without a default
    are required.
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for param in inspect.signature(func).parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        properties[param.name] = {"type": _JSON_TYPES.get(param.annotation, "string")}
        if param.default is param.empty:
            required.append(param.name)

    if description is None:
        doc = inspect.getdoc(func) or ""
        description = doc.splitlines()[0] if doc else ""

    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {"type": "object", "properties": properties, "required": required},
        },
    }


class ToolBox:
    """Named Python callables exposed to the model as tools.

    The toolbox is itself a tool handler: ``toolbox(name, arguments)`` calls
    the registered function with the arguments as keyword arguments and
    returns a string for the tool message. Exceptions raised by a tool are
    not caught.
    """

    def __init__(self):
        self._funcs: Dict[str, Callable] = {}
        self._definitions: Dict[str, Dict[str, Any]] = {}

    def register(self, name: str, func: Callable, definition: Optional[Dict[str, Any]] = None, description: Optional[str] = None):
        self._funcs[name] = func
        self._definitions[name] = definition or describe_function(name, func, description)
        return func

    def tool(self, name: Optional[str] = None, definition: Optional[Dict[str, Any]] = None, description: Optional[str] = None):
        """Decorator form of register()."""
        def decorator(func):
            return self.register(name or func.__name__, func, definition, description)
        return decorator

    @property
    def definitions(self) -> List[Dict[str, Any]]:
        return list(self._definitions.values())

    @property
    def names(self) -> List[str]:
        return list(self._funcs)

    def __contains__(self, name) -> bool:
        return name in self._funcs

    def __len__(self) -> int:
        return len(self._funcs)

    def __call__(self, name: str, arguments: Dict[str, Any]):
        func = self._funcs.get(name)
        if func is None:
            return f"Unknown tool: {name}"

        result = func(**arguments)
        if inspect.isawaitable(result):
            return _encode_later(result)
        return encode_result(result)


def encode_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps({"result": result}, default=str)


async def _encode_later(awaitable):
    return encode_result(await awaitable)
