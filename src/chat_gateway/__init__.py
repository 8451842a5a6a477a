"""
Chat Gateway - one tool-calling chat interface over several LLM backends.
"""

from .client import (
    BaseChatClient,
    OpenAIChatClient,
    OpenAICompletionsChatClient,
    AnthropicChatClient,
    GeminiChatClient,
    MoonshotChatClient,
    create_client,
)
from .functions import (
    LocalFunction,
    LocalFunctionParameter,
    LocalFunctionParameterType,
    local_function,
)
from .loop import LoopLimits, MAX_RECURSION_TEXT
from .names import sanitize_name
from .providers import Provider, get_api_key
from .ratelimit import LeakyBucketRateLimiter
from .toolhub import ToolHub
from .types import (
    ChatParameters,
    FrozenChatParameters,
    ImageContent,
    Message,
    PreparedChatParameters,
    Role,
    TextContent,
    ToolChoiceType,
)
from ._exceptions import BackendCallError, GatewayError, ToolError

__version__ = "0.1.0"

__all__ = [
    "BaseChatClient",
    "OpenAIChatClient",
    "OpenAICompletionsChatClient",
    "AnthropicChatClient",
    "GeminiChatClient",
    "MoonshotChatClient",
    "create_client",
    "LocalFunction",
    "LocalFunctionParameter",
    "LocalFunctionParameterType",
    "local_function",
    "LoopLimits",
    "MAX_RECURSION_TEXT",
    "sanitize_name",
    "Provider",
    "get_api_key",
    "LeakyBucketRateLimiter",
    "ToolHub",
    "ChatParameters",
    "FrozenChatParameters",
    "ImageContent",
    "Message",
    "PreparedChatParameters",
    "Role",
    "TextContent",
    "ToolChoiceType",
    "BackendCallError",
    "GatewayError",
    "ToolError",
]
