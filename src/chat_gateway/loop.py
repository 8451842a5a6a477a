"""
The bounded tool-calling loop shared by every backend.

One call runs at most ``max_responses`` round-trips and ``max_tool_calls``
tool invocations. The ceilings are checked before each round-trip, so a
response that pushes a counter over its ceiling is still processed and only
the next round-trip is refused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Final, Optional, Protocol, Sequence

from chat_gateway._exceptions import ToolError, ToolNotFoundError
from chat_gateway.types.chat import FrozenChatParameters, Message, PreparedChatParameters
from chat_gateway.types.tool import ModelTurn, ToolCallRequest, ToolCallResult

__all__ = ["LoopLimits", "RequestAdapter", "run_tool_loop", "MAX_RECURSION_TEXT"]

MAX_RECURSION_TEXT: Final = "Maximale Rekursionstiefe erreicht. Keine Antwort generiert."


@dataclass(frozen=True, slots=True)
class LoopLimits:
    max_responses: int = 3
    max_tool_calls: int = 5


class RequestAdapter(Protocol):
    """Translation between the neutral model and one backend wire format."""

    continues_prefill: bool
    empty_response_text: str

    def prepare(self, parameters: FrozenChatParameters) -> dict[str, Any]:
        """Build the request template (sampling options, tool schema, tool choice)."""
        ...

    def build_messages(
        self, system_prompt: Optional[str], history: Sequence[Message], prefill: Optional[str]
    ) -> list[Any]:
        """Convert the neutral conversation to native messages."""
        ...

    def build_request(
        self, template: dict[str, Any], system_prompt: Optional[str], messages: Sequence[Any]
    ) -> dict[str, Any]:
        """Keyword arguments for one SDK call."""
        ...

    def parse(self, raw: Any) -> ModelTurn:
        """Read text, tool calls and stop reason from a native response."""
        ...

    def assistant_items(self, raw: Any) -> list[Any]:
        """Native history items echoing the model's turn."""
        ...

    def tool_result_items(self, results: Sequence[ToolCallResult]) -> list[Any]:
        """Native history items carrying tool results."""
        ...


SendFn = Callable[[list[Any]], Awaitable[Any]]


async def run_tool_loop(
    send: SendFn,
    adapter: RequestAdapter,
    messages: Sequence[Any],
    prepared: PreparedChatParameters,
    *,
    limits: LoopLimits = LoopLimits(),
    logger: Optional[logging.Logger] = None,
) -> str:
    """
    Drive the conversation until the model gives a final answer.

    Args:
        send: Performs one round-trip with the native message list.
        adapter: Wire format of the backend behind ``send``.
        messages: Native conversation as built by ``adapter.build_messages``.
            Never mutated; each completed round extends a private copy.
        prepared: Supplies the available local functions and the prefill.
        limits: Round-trip and tool-call ceilings.

    Returns:
        The answer text, suffixed with ``(*N)`` when N tools were used, or
        :data:`MAX_RECURSION_TEXT` when a ceiling was hit.
    """
    log = logger or logging.getLogger(__name__)
    history = list(messages)
    responses = 1
    tool_calls = 0
    texts: list[str] = []
    placeholder: Optional[str] = None

    while True:
        if responses > limits.max_responses or tool_calls > limits.max_tool_calls:
            log.warning(
                "Stopping loop due to excessive responses or tool calls: %d, %d",
                responses,
                tool_calls,
            )
            return MAX_RECURSION_TEXT

        raw = await send(history)
        responses += 1

        turn = adapter.parse(raw)
        tool_calls += turn.tool_call_count
        if turn.text:
            texts.append(turn.text)
        placeholder = turn.placeholder

        if not turn.tool_calls and not turn.needs_continuation:
            break

        results = []
        for call in turn.tool_calls:
            results.append(await _run_tool_call(call, prepared, log))
        history = history + adapter.assistant_items(raw) + adapter.tool_result_items(results)

    text = "".join(texts)
    prefill = (prepared.original.prefill or "").rstrip()
    if adapter.continues_prefill and prefill:
        # same trailing-whitespace-free form the backend was sent
        text = prefill + text
    if placeholder:
        text = f"{text} {placeholder}" if text.strip() else placeholder
    if not text.strip():
        log.error("Backend returned no output after %d responses", responses - 1)
        text = adapter.empty_response_text
    if tool_calls > 0:
        text += f"(*{tool_calls})"
    return text


async def _run_tool_call(
    call: ToolCallRequest,
    prepared: PreparedChatParameters,
    log: logging.Logger,
) -> ToolCallResult:
    function = prepared.find_function(call.name)
    if function is None:
        log.warning("Tool call '%s' not found in available local functions.", call.name)
        return ToolCallResult(call.id, str(ToolNotFoundError(call.name)))

    try:
        content = await function.execute(call.arguments)
    except ToolError as exc:
        log.warning("Error executing tool call '%s': %s", call.name, exc)
        content = f"Error executing tool: {exc}"
    return ToolCallResult(call.id, content)
