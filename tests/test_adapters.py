"""Tests for the request adapters."""

import base64

import pytest

from chat_gateway._exceptions import BackendCallError
from chat_gateway.adapters import (
    AnthropicRequestAdapter,
    OpenAIRequestAdapter,
    OpenAIResponsesAdapter,
)
from chat_gateway.adapters.anthropic import merge_consecutive
from chat_gateway.types import (
    ChatParameters,
    ImageContent,
    Message,
    Role,
    TextContent,
    ToolCallResult,
    ToolChoiceType,
)

from fakes import (
    anthropic_message,
    completion,
    completion_tool_call,
    function_call,
    output_message,
    response,
    text_block,
    tool_use_block,
)

PNG = b"\x89PNG\r\n\x1a\nfake"


@pytest.fixture
def image_message():
    return Message(Role.USER, [TextContent("What is this?"), ImageContent(PNG, "image/png")])


class TestChatCompletionsAdapter:
    @pytest.fixture
    def adapter(self):
        return OpenAIRequestAdapter()

    def test_prepare_basic(self, adapter):
        request = adapter.prepare(ChatParameters(temperature=0.7, max_tokens=100, top_p=0.9))

        assert request == {"max_tokens": 100, "temperature": 0.7, "top_p": 0.9}

    def test_prepare_tools(self, adapter, weather_function):
        request = adapter.prepare(
            ChatParameters(
                available_local_functions=[weather_function],
                tool_choice=ToolChoiceType.NONE,
                disable_parallel_tool_use=True,
            )
        )

        tool = request["tools"][0]
        assert tool["type"] == "function"
        assert tool["function"]["name"] == "get_current_weather"
        assert tool["function"]["parameters"]["required"] == ["location"]
        assert request["tool_choice"] == "none"
        assert request["parallel_tool_calls"] is False

    def test_web_search_is_ignored(self, adapter, caplog):
        request = adapter.prepare(ChatParameters(enable_web_search=True))

        assert "tools" not in request
        assert "Web search is not available" in caplog.text

    def test_reasoning_effort_is_passed_through(self, adapter):
        request = adapter.prepare(ChatParameters(reasoning_effort="low"))

        assert request["extra_body"] == {"reasoning_effort": "low"}

    def test_build_messages(self, adapter):
        history = [
            Message.from_text(Role.USER, "Hi"),
            Message.from_text(Role.ASSISTANT, "Hello!"),
        ]

        messages = adapter.build_messages("Be nice", history, "Well,")

        assert messages == [
            {"role": "system", "content": "Be nice"},
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
            {"role": "assistant", "content": "Well,"},
        ]

    def test_image_parts(self, adapter, image_message):
        content = adapter.build_messages(None, [image_message], None)[0]["content"]

        assert content[0] == {"type": "text", "text": "What is this?"}
        url = content[1]["image_url"]["url"]
        assert url == "data:image/png;base64," + base64.b64encode(PNG).decode()

    def test_images_replaced_on_text_only_models(self, image_message, caplog):
        adapter = OpenAIRequestAdapter("Moonshot", supports_images=False)

        messages = adapter.build_messages(None, [image_message], None)

        assert messages[0]["content"] == "What is this?[Bild entfernt: image/png]"
        assert "does not accept images" in caplog.text

    def test_parse_tool_calls(self, adapter):
        raw = completion(
            tool_calls=[completion_tool_call("call_1", "get_current_weather", '{"location": "X"}')],
            finish_reason="tool_calls",
        )

        turn = adapter.parse(raw)

        assert turn.text == ""
        assert [(c.id, c.name) for c in turn.tool_calls] == [("call_1", "get_current_weather")]
        assert turn.placeholder is None

    @pytest.mark.parametrize(
        "raw, placeholder",
        [
            (completion("cut", finish_reason="length"), "[Response truncated due to max tokens]"),
            (completion(None, finish_reason="content_filter"), "[Response filtered by content policy]"),
            (completion(None, refusal="I won't"), "[Refusal]"),
        ],
    )
    def test_parse_placeholders(self, adapter, raw, placeholder):
        assert adapter.parse(raw).placeholder == placeholder

    def test_tool_result_items(self, adapter):
        items = adapter.tool_result_items([ToolCallResult("call_1", "sunny")])

        assert items == [{"role": "tool", "tool_call_id": "call_1", "content": "sunny"}]


class TestResponsesAdapter:
    @pytest.fixture
    def adapter(self):
        return OpenAIResponsesAdapter()

    def test_prepare(self, adapter, weather_function):
        request = adapter.prepare(
            ChatParameters(
                available_local_functions=[weather_function],
                enable_web_search=True,
                reasoning_effort="low",
            )
        )

        assert request["store"] is False
        assert request["max_output_tokens"] == 1000
        assert request["reasoning"] == {"effort": "low"}
        assert request["include"] == ["reasoning.encrypted_content"]
        assert [t["type"] for t in request["tools"]] == ["function", "web_search"]
        assert request["tools"][0]["name"] == "get_current_weather"
        assert request["tool_choice"] == "auto"

    def test_build_messages(self, adapter, image_message):
        items = adapter.build_messages("System", [image_message], None)

        assert items[0] == {"role": "developer", "content": "System"}
        assert items[1]["content"][0] == {"type": "input_text", "text": "What is this?"}
        assert items[1]["content"][1]["type"] == "input_image"
        assert items[1]["content"][1]["image_url"].startswith("data:image/png;base64,")

    def test_parse_counts_web_search_calls(self, adapter):
        raw = response(
            function_call("fc_1", "get_current_weather", '{"location": "X"}'),
            type("WebSearch", (), {"type": "web_search_call"})(),
            output_message("Looking it up"),
        )

        turn = adapter.parse(raw)

        assert turn.text == "Looking it up"
        assert turn.tool_calls[0].id == "fc_1"
        assert turn.tool_call_count == 2

    def test_parse_truncated(self, adapter):
        raw = response(
            output_message("Partial"), status="incomplete", incomplete_reason="max_output_tokens"
        )

        assert adapter.parse(raw).placeholder == "[Response truncated due to max tokens]"

    def test_failed_response_raises(self, adapter):
        raw = response(status="failed", error=type("Err", (), {"message": "server_error"})())

        with pytest.raises(BackendCallError) as exc_info:
            adapter.parse(raw)
        assert exc_info.value.user_message == (
            "Fehler bei der Kommunikation mit OpenAI: server_error"
        )

    def test_echo_and_results(self, adapter):
        raw = response(function_call("fc_1", "get_current_weather", "{}"))

        assert adapter.assistant_items(raw) == [
            {"type": "function_call", "call_id": "fc_1", "name": "get_current_weather", "arguments": "{}"}
        ]
        assert adapter.tool_result_items([ToolCallResult("fc_1", "sunny")]) == [
            {"type": "function_call_output", "call_id": "fc_1", "output": "sunny"}
        ]


class TestAnthropicAdapter:
    @pytest.fixture
    def adapter(self):
        return AnthropicRequestAdapter()

    def test_prepare(self, adapter, weather_function):
        request = adapter.prepare(
            ChatParameters(
                available_local_functions=[weather_function],
                enable_web_search=True,
                disable_parallel_tool_use=True,
                top_k=40,
            )
        )

        assert request["max_tokens"] == 1000
        assert request["top_k"] == 40
        assert request["tools"][0]["input_schema"]["required"] == ["location"]
        assert request["tools"][1] == {
            "type": "web_search_20250305",
            "name": "web_search",
            "max_uses": 5,
        }
        assert request["tool_choice"] == {"type": "auto", "disable_parallel_tool_use": True}

    def test_build_request_merges_roles_and_sets_system(self, adapter, image_message):
        history = [Message.from_text(Role.USER, "First"), image_message]
        messages = adapter.build_messages("System", history, "Sure ")

        request = adapter.build_request({"max_tokens": 10}, "System", messages)

        assert request["system"] == "System"
        assert [m["role"] for m in request["messages"]] == ["user", "assistant"]
        user_blocks = request["messages"][0]["content"]
        assert [b["type"] for b in user_blocks] == ["text", "text", "image"]
        assert user_blocks[2]["source"]["media_type"] == "image/png"
        assert request["messages"][1]["content"] == [{"type": "text", "text": "Sure"}]

    def test_parse(self, adapter):
        raw = anthropic_message(
            text_block("Let me check."),
            tool_use_block("toolu_1", "get_current_weather", {"location": "X"}),
            stop_reason="tool_use",
        )

        turn = adapter.parse(raw)

        assert turn.text == "Let me check."
        assert turn.tool_calls[0].arguments == {"location": "X"}
        assert not turn.needs_continuation

    @pytest.mark.parametrize(
        "stop_reason, placeholder",
        [("refusal", "[Refusal]"), ("max_tokens", "[Response truncated due to max tokens]")],
    )
    def test_parse_placeholders(self, adapter, stop_reason, placeholder):
        raw = anthropic_message(text_block("x"), stop_reason=stop_reason)
        assert adapter.parse(raw).placeholder == placeholder

    def test_tool_results_share_one_user_turn(self, adapter):
        items = adapter.tool_result_items(
            [ToolCallResult("toolu_1", "a"), ToolCallResult("toolu_2", "b")]
        )

        assert len(items) == 1
        assert items[0]["role"] == "user"
        assert [b["tool_use_id"] for b in items[0]["content"]] == ["toolu_1", "toolu_2"]
        assert adapter.tool_result_items([]) == []

    def test_merge_consecutive_accepts_string_content(self):
        merged = merge_consecutive(
            [
                {"role": "assistant", "content": "Prefill"},
                {"role": "assistant", "content": [{"type": "tool_use", "id": "t"}]},
            ]
        )

        assert merged == [
            {
                "role": "assistant",
                "content": [{"type": "text", "text": "Prefill"}, {"type": "tool_use", "id": "t"}],
            }
        ]
