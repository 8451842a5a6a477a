"""OpenAI Chat Completions adapter, also used for OpenAI-compatible endpoints."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from openai.types.chat import ChatCompletion

from chat_gateway.adapters.base import (
    FILTERED_TEXT,
    REFUSAL_TEXT,
    TRUNCATED_TEXT,
    data_uri,
    empty_response_text,
    image_marker,
)
from chat_gateway.types.chat import (
    FrozenChatParameters,
    ImageContent,
    Message,
    Role,
    TextContent,
)
from chat_gateway.types.tool import ModelTurn, ToolCallRequest, ToolCallResult


class OpenAIRequestAdapter:
    """Adapter for converting between the neutral model and Chat Completions."""

    continues_prefill = False

    def __init__(
        self,
        backend: str = "OpenAI",
        *,
        supports_images: bool = True,
        max_tokens_param: str = "max_tokens",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.backend = backend
        self.supports_images = supports_images
        self.max_tokens_param = max_tokens_param
        self.logger = logger or logging.getLogger(__name__)
        self.empty_response_text = empty_response_text(backend)

    def prepare(self, parameters: FrozenChatParameters) -> dict[str, Any]:
        request: dict[str, Any] = {self.max_tokens_param: parameters.max_tokens}
        if parameters.temperature is not None:
            request["temperature"] = parameters.temperature
        if parameters.top_p is not None:
            request["top_p"] = parameters.top_p
        if parameters.top_k is not None:
            self.logger.debug("%s does not support top_k; ignoring it", self.backend)
        if parameters.reasoning_effort:
            # Passed through untyped so OpenAI-compatible endpoints receive it too
            request["extra_body"] = {"reasoning_effort": parameters.reasoning_effort}

        tools = [
            {
                "type": "function",
                "function": {
                    "name": function.name,
                    "description": function.description,
                    "parameters": function.json_schema(),
                },
            }
            for function in parameters.available_local_functions
        ]
        if parameters.enable_web_search:
            self.logger.warning(
                "Web search is not available through %s chat completions; ignoring it",
                self.backend,
            )
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
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for message in history:
            messages.append({"role": message.role.value, "content": self._content(message)})
        if prefill:
            messages.append({"role": "assistant", "content": prefill})
        return messages

    def _content(self, message: Message) -> str | list[dict[str, Any]]:
        if message.role == Role.ASSISTANT or not message.images:
            return message.text
        if not self.supports_images:
            return "".join(
                part.text if isinstance(part, TextContent)
                else image_marker(part, self.backend, self.logger)
                for part in message.content
            )

        parts: list[dict[str, Any]] = []
        for part in message.content:
            if isinstance(part, ImageContent):
                parts.append({"type": "image_url", "image_url": {"url": data_uri(part)}})
            else:
                parts.append({"type": "text", "text": part.text})
        return parts

    def build_request(
        self,
        template: dict[str, Any],
        system_prompt: Optional[str],
        messages: Sequence[Any],
    ) -> dict[str, Any]:
        return {"messages": list(messages), **template}

    def parse(self, raw: ChatCompletion) -> ModelTurn:
        if not raw.choices:
            return ModelTurn()

        choice = raw.choices[0]
        message = choice.message
        turn = ModelTurn(text=message.content or "")
        for tc in message.tool_calls or []:
            if tc.type != "function":
                continue
            turn.tool_calls.append(
                ToolCallRequest(id=tc.id, name=tc.function.name, arguments=tc.function.arguments)
            )

        if getattr(message, "refusal", None):
            turn.placeholder = REFUSAL_TEXT
        elif choice.finish_reason == "length":
            turn.placeholder = TRUNCATED_TEXT
        elif choice.finish_reason == "content_filter":
            turn.placeholder = FILTERED_TEXT
        return turn

    def assistant_items(self, raw: ChatCompletion) -> list[dict[str, Any]]:
        if not raw.choices:
            return []

        message = raw.choices[0].message
        chat_message: dict[str, Any] = {"role": "assistant", "content": message.content}
        if message.tool_calls:
            chat_message["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.function.name,
                        "arguments": tc.function.arguments,
                    },
                }
                for tc in message.tool_calls
                if tc.type == "function"
            ]
        return [chat_message]

    def tool_result_items(self, results: Sequence[ToolCallResult]) -> list[dict[str, Any]]:
        return [
            {"role": "tool", "tool_call_id": result.id, "content": result.content}
            for result in results
        ]
