from .agent import ToolAgent, ToolBox, load_tools
from .client import OllamaClient
from .errors import ParseError, SendError, ToolRelayError
from .protocol import ChatOutcome, build_chat_body, make_tool_message, parse_response

__version__ = "0.1.0"

__all__ = [
	"ChatOutcome",
	"OllamaClient",
	"ParseError",
	"SendError",
	"ToolAgent",
	"ToolBox",
	"ToolRelayError",
	"build_chat_body",
	"load_tools",
	"make_tool_message",
	"parse_response",
]
