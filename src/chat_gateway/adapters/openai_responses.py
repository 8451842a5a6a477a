"""OpenAI Responses API adapter."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from openai.types.responses import Response

from chat_gateway._exceptions import BackendCallError
from chat_gateway.adapters.base import (
    FILTERED_TEXT,
    REFUSAL_TEXT,
    TRUNCATED_TEXT,
    data_uri,
    empty_response_text,
)
from chat_gateway.types.chat import FrozenChatParameters, ImageContent, Message, Role
from chat_gateway.types.tool import ModelTurn, ToolCallRequest, ToolCallResult


class OpenAIResponsesAdapter:
    """
    Adapter for the Responses API.

    Requests are sent with ``store=False``, so every round-trip carries the
    complete input: prior function calls are echoed back as ``function_call``
    items and reasoning items are echoed only when they carry encrypted content.
    """

    continues_prefill = False

    def __init__(self, backend: str = "OpenAI", *, logger: Optional[logging.Logger] = None) -> None:
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)
        self.empty_response_text = empty_response_text(backend)

    def prepare(self, parameters: FrozenChatParameters) -> dict[str, Any]:
        request: dict[str, Any] = {
            "max_output_tokens": parameters.max_tokens,
            "store": False,
        }
        if parameters.temperature is not None:
            request["temperature"] = parameters.temperature
        if parameters.top_p is not None:
            request["top_p"] = parameters.top_p
        if parameters.top_k is not None:
            self.logger.debug("%s does not support top_k; ignoring it", self.backend)
        if parameters.reasoning_effort:
            request["reasoning"] = {"effort": parameters.reasoning_effort}
            request["include"] = ["reasoning.encrypted_content"]

        tools: list[dict[str, Any]] = [
            {
                "type": "function",
                "name": function.name,
                "description": function.description,
                "parameters": function.json_schema(),
                "strict": False,
            }
            for function in parameters.available_local_functions
        ]
        if parameters.enable_web_search:
            tools.append({"type": "web_search"})
        if tools:
            request["tools"] = tools
            request["tool_choice"] = parameters.tool_choice.value
            if parameters.disable_parallel_tool_use:
                request["parallel_tool_calls"] = False
        return request

    def build_messages(
        self,
        system_prompt: Optional[str],
        history: Sequence[Message],
        prefill: Optional[str],
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        if system_prompt:
            items.append({"role": "developer", "content": system_prompt})
        for message in history:
            if message.role == Role.ASSISTANT:
                items.append({"role": "assistant", "content": message.text})
                continue
            content = []
            for part in message.content:
                if isinstance(part, ImageContent):
                    content.append({"type": "input_image", "image_url": data_uri(part)})
                else:
                    content.append({"type": "input_text", "text": part.text})
            items.append({"role": "user", "content": content})
        if prefill:
            items.append({"role": "assistant", "content": prefill})
        return items

    def build_request(
        self,
        template: dict[str, Any],
        system_prompt: Optional[str],
        messages: Sequence[Any],
    ) -> dict[str, Any]:
        return {"input": list(messages), **template}

    def parse(self, raw: Response) -> ModelTurn:
        if raw.status == "failed":
            detail = raw.error.message if raw.error else "unknown error"
            raise BackendCallError(
                f"{self.backend} response failed: {detail}",
                user_message=f"Fehler bei der Kommunikation mit {self.backend}: {detail}",
            )

        turn = ModelTurn()
        texts: list[str] = []
        refused = False
        for item in raw.output:
            if item.type == "message":
                for part in item.content:
                    if part.type == "output_text":
                        texts.append(part.text)
                    elif part.type == "refusal":
                        refused = True
            elif item.type == "function_call":
                turn.tool_calls.append(
                    ToolCallRequest(id=item.call_id, name=item.name, arguments=item.arguments)
                )
            elif item.type == "web_search_call":
                turn.native_tool_calls += 1
        turn.text = "".join(texts)

        if refused:
            turn.placeholder = REFUSAL_TEXT
        elif raw.status == "incomplete" and raw.incomplete_details is not None:
            if raw.incomplete_details.reason == "max_output_tokens":
                turn.placeholder = TRUNCATED_TEXT
            elif raw.incomplete_details.reason == "content_filter":
                turn.placeholder = FILTERED_TEXT
        return turn

    def assistant_items(self, raw: Response) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for item in raw.output:
            if item.type == "function_call":
                items.append(
                    {
                        "type": "function_call",
                        "call_id": item.call_id,
                        "name": item.name,
                        "arguments": item.arguments,
                    }
                )
            elif item.type == "message":
                text = "".join(p.text for p in item.content if p.type == "output_text")
                if text:
                    items.append({"role": "assistant", "content": text})
            elif item.type == "reasoning" and getattr(item, "encrypted_content", None):
                items.append(item.model_dump(exclude_none=True))
        return items

    def tool_result_items(self, results: Sequence[ToolCallResult]) -> list[dict[str, Any]]:
        return [
            {"type": "function_call_output", "call_id": result.id, "output": result.content}
            for result in results
        ]
