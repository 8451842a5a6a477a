"""Pure transformation adapters for the supported backends."""

from .anthropic import AnthropicRequestAdapter
from .openai import OpenAIRequestAdapter
from .openai_responses import OpenAIResponsesAdapter

__all__ = [
    "AnthropicRequestAdapter",
    "OpenAIRequestAdapter",
    "OpenAIResponsesAdapter",
]
