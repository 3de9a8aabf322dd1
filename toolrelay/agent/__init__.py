from .tool_agent import Phase, ToolAgent
from .tools import ToolBox, describe_function, load_tools

__all__ = [
	"Phase",
	"ToolAgent",
	"ToolBox",
	"describe_function",
	"load_tools",
]
