"""Anthropic Messages adapter."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional, Sequence

from anthropic.types import Message as AnthropicMessage

from chat_gateway.adapters.base import REFUSAL_TEXT, TRUNCATED_TEXT, empty_response_text
from chat_gateway.types.chat import FrozenChatParameters, ImageContent, Message, Role
from chat_gateway.types.tool import ModelTurn, ToolCallRequest, ToolCallResult

WEB_SEARCH_TOOL: dict[str, Any] = {
    "type": "web_search_20250305",
    "name": "web_search",
    "max_uses": 5,
}


class AnthropicRequestAdapter:
    """Adapter for converting between the neutral model and the Messages API."""

    # Claude continues a trailing assistant message instead of repeating it
    continues_prefill = True

    def __init__(self, backend: str = "Anthropic", *, logger: Optional[logging.Logger] = None) -> None:
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)
        self.empty_response_text = empty_response_text(backend)

    def prepare(self, parameters: FrozenChatParameters) -> dict[str, Any]:
        request: dict[str, Any] = {"max_tokens": parameters.max_tokens}
        if parameters.temperature is not None:
            request["temperature"] = parameters.temperature
        if parameters.top_p is not None:
            request["top_p"] = parameters.top_p
        if parameters.top_k is not None:
            request["top_k"] = parameters.top_k
        if parameters.reasoning_effort:
            self.logger.debug(
                "%s takes a thinking budget, not a reasoning effort; ignoring it", self.backend
            )

        tools: list[dict[str, Any]] = [
            {
                "name": function.name,
                "description": function.description,
                "input_schema": function.json_schema(),
            }
            for function in parameters.available_local_functions
        ]
        if parameters.enable_web_search:
            tools.append(dict(WEB_SEARCH_TOOL))
        if tools:
            request["tools"] = tools
            tool_choice: dict[str, Any] = {"type": parameters.tool_choice.value}
            if parameters.disable_parallel_tool_use and tool_choice["type"] != "none":
                tool_choice["disable_parallel_tool_use"] = True
            request["tool_choice"] = tool_choice
        return request

    def build_messages(
        self,
        system_prompt: Optional[str],
        history: Sequence[Message],
        prefill: Optional[str],
    ) -> list[dict[str, Any]]:
        # The system prompt is a top-level request field, see build_request
        messages: list[dict[str, Any]] = []
        for message in history:
            blocks: list[dict[str, Any]] = []
            for part in message.content:
                if isinstance(part, ImageContent):
                    blocks.append(
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": part.mime_type,
                                "data": base64.b64encode(part.data).decode("ascii"),
                            },
                        }
                    )
                elif part.text:
                    blocks.append({"type": "text", "text": part.text})
            if blocks:
                messages.append({"role": message.role.value, "content": blocks})
        if prefill and prefill.rstrip():
            # The API rejects a final assistant turn ending in whitespace
            messages.append(
                {"role": Role.ASSISTANT.value, "content": [{"type": "text", "text": prefill.rstrip()}]}
            )
        return messages

    def build_request(
        self,
        template: dict[str, Any],
        system_prompt: Optional[str],
        messages: Sequence[Any],
    ) -> dict[str, Any]:
        request = {"messages": merge_consecutive(messages), **template}
        if system_prompt:
            request["system"] = system_prompt
        return request

    def parse(self, raw: AnthropicMessage) -> ModelTurn:
        turn = ModelTurn()
        texts: list[str] = []
        for block in raw.content or []:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                turn.tool_calls.append(
                    ToolCallRequest(id=block.id, name=block.name, arguments=dict(block.input))
                )
            elif block.type == "server_tool_use":
                turn.native_tool_calls += 1
        turn.text = "".join(texts)

        if raw.stop_reason == "pause_turn":
            turn.needs_continuation = True
        elif raw.stop_reason == "refusal":
            turn.placeholder = REFUSAL_TEXT
        elif raw.stop_reason == "max_tokens":
            turn.placeholder = TRUNCATED_TEXT
        return turn

    def assistant_items(self, raw: AnthropicMessage) -> list[dict[str, Any]]:
        blocks = [_block_param(block) for block in raw.content or []]
        if not blocks:
            return []
        return [{"role": Role.ASSISTANT.value, "content": blocks}]

    def tool_result_items(self, results: Sequence[ToolCallResult]) -> list[dict[str, Any]]:
        if not results:
            return []
        return [
            {
                "role": Role.USER.value,
                "content": [
                    {"type": "tool_result", "tool_use_id": result.id, "content": result.content}
                    for result in results
                ],
            }
        ]


def merge_consecutive(messages: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Join adjacent messages of the same role; the API requires alternating turns."""
    merged: list[dict[str, Any]] = []
    for message in messages:
        if merged and merged[-1]["role"] == message["role"]:
            merged[-1] = {
                "role": message["role"],
                "content": _as_blocks(merged[-1]["content"]) + _as_blocks(message["content"]),
            }
        else:
            merged.append(message)
    return merged


def _as_blocks(content: str | list[dict[str, Any]]) -> list[dict[str, Any]]:
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return list(content)


def _block_param(block: Any) -> dict[str, Any]:
    if block.type == "text":
        return {"type": "text", "text": block.text}
    if block.type == "tool_use":
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": dict(block.input)}
    # server tool blocks (web search calls and results) go back unchanged
    return block.model_dump(exclude_none=True)
