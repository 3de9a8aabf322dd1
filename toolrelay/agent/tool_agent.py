import asyncio
import enum
import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .. import debug
from ..client import OllamaClient
from ..errors import ToolRelayError
from ..protocol import (
    ChatOutcome,
    ToolCall,
    make_tool_message,
    pending_tool_calls,
    strip_function_index,
)
from .tools import encode_result

ToolHandler = Callable[[str, Dict[str, Any]], Any]


class Phase(enum.Enum):
    """Where an exchange stopped, reported by ToolAgent.phase_of()."""

    FIRST_REPLY = 1
    SECOND_REPLY = 2


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def _await(result):
    """Resolve a handler result from synchronous code.

    Awaitables are driven with asyncio.run(), which only works when this
    thread has no running event loop; otherwise the awaitable is closed and
    the caller is pointed at ToolAgent.arun().
    """
    if not inspect.isawaitable(result):
        return result

    if _loop_running():
        close = getattr(result, "close", None)
        if close is not None:
            close()
        raise ToolRelayError("async tool handler used from a running event loop; await ToolAgent.arun() instead")

    async def wait():
        return await result

    return asyncio.run(wait())


class ToolAgent:
    """
    Runs a chat turn and resolves the tool calls in the model's reply.

    The model is asked once with the tool definitions. If the reply carries a
    ``tool_calls`` key, each call is executed through the handler in order,
    the results are appended as tool messages, and the model is asked a second
    time without the tool definitions. A second reply that asks for tools
    again is returned as-is; callers wanting another hop call run() again with
    the new history.

    When the full conversation is requested the first reply comes back as a
    message list, which is returned unchanged without resolving any tools.
    Use ``outcome.transcript(messages)`` with output_full_message=False to get
    the whole exchange instead.

    run() and chat_with_tools() are blocking; arun() and achat_with_tools()
    are their coroutine forms and await async handlers on the caller's loop.
    """

    def __init__(self, client: Optional[OllamaClient] = None, host=None):
        self.client = client or OllamaClient(host=host)

    @staticmethod
    def phase_of(outcome: ChatOutcome) -> Phase:
        return Phase.SECOND_REPLY if outcome.rounds > 1 else Phase.FIRST_REPLY

    # -------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------
    @staticmethod
    def _first_options(tools, options) -> Dict[str, Any]:
        first_options = dict(options or {})
        first_options["tools"] = tools
        first_options["tool_choice"] = "auto"
        return first_options

    @staticmethod
    def _is_final(first: ChatOutcome, output_full_message: bool) -> bool:
        # a failed round-trip or a full conversation never carries tool calls
        if not first.ok or output_full_message:
            return True
        return "tool_calls" not in first.message

    @staticmethod
    def _prepare_call(raw_call: Dict[str, Any]) -> ToolCall:
        strip_function_index(raw_call)
        call = ToolCall.model_validate(raw_call)
        debug.log(f"tool call {call.call_id}: {call.function.name}({debug.truncate(call.function.arguments, 200)})")
        return call

    @staticmethod
    def _tool_message(call: ToolCall, result) -> Dict[str, Any]:
        content = encode_result(result)
        debug.log(f"tool {call.function.name} returned: {debug.truncate(content, 200)}")
        return make_tool_message(call.call_id, content, call.function.name)

    @staticmethod
    def _finish(second: ChatOutcome, reply: Dict[str, Any], tool_messages: List[Dict[str, Any]]) -> ChatOutcome:
        return ChatOutcome(
            second.status,
            message=second.message,
            conversation=second.conversation,
            error=second.error,
            tool_reply=reply,
            tool_messages=tuple(tool_messages),
            rounds=2,
        )

    # -------------------------------------------------------------
    # Main interaction
    # -------------------------------------------------------------
    def run(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        tool_handler: ToolHandler,
        output_full_message: bool = False,
        options: Optional[Mapping[str, Any]] = None,
    ) -> ChatOutcome:
        """Chat with tools enabled and resolve one round of tool calls.

        Returns the outcome of the last round-trip made. Errors raised by
        ``tool_handler`` propagate and abort the exchange.
        """
        messages = list(messages)
        first = self.client.send_chat(model, messages, output_full_message, self._first_options(tools, options))
        if self._is_final(first, output_full_message):
            return first

        reply = first.message
        calls = pending_tool_calls(reply)
        debug.log(f"resolving {len(calls)} tool call(s)")
        tool_messages = []
        for raw_call in calls:
            call = self._prepare_call(raw_call)
            result = _await(tool_handler(call.function.name, call.function.arguments))
            tool_messages.append(self._tool_message(call, result))

        # persist the assistant's tool call message so IDs are preserved
        conversation = messages + [reply] + tool_messages
        second = self.client.send_chat(model, conversation, output_full_message, {})
        return self._finish(second, reply, tool_messages)

    async def arun(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        tool_handler: ToolHandler,
        output_full_message: bool = False,
        options: Optional[Mapping[str, Any]] = None,
    ) -> ChatOutcome:
        """Coroutine form of run(); round-trips run in a worker thread."""
        messages = list(messages)
        first = await asyncio.to_thread(
            self.client.send_chat, model, messages, output_full_message, self._first_options(tools, options)
        )
        if self._is_final(first, output_full_message):
            return first

        reply = first.message
        calls = pending_tool_calls(reply)
        debug.log(f"resolving {len(calls)} tool call(s)")
        tool_messages = []
        for raw_call in calls:
            call = self._prepare_call(raw_call)
            result = tool_handler(call.function.name, call.function.arguments)
            if inspect.isawaitable(result):
                result = await result
            tool_messages.append(self._tool_message(call, result))

        conversation = messages + [reply] + tool_messages
        second = await asyncio.to_thread(self.client.send_chat, model, conversation, output_full_message, {})
        return self._finish(second, reply, tool_messages)

    def chat_with_tools(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        tool_handler: ToolHandler,
        output_full_message: bool = False,
        options: Optional[Mapping[str, Any]] = None,
    ):
        return self.run(model, messages, tools, tool_handler, output_full_message, options).value

    async def achat_with_tools(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        tool_handler: ToolHandler,
        output_full_message: bool = False,
        options: Optional[Mapping[str, Any]] = None,
    ):
        outcome = await self.arun(model, messages, tools, tool_handler, output_full_message, options)
        return outcome.value
