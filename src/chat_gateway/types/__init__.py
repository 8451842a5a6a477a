from .chat import (
    ChatParameters,
    ContentPart,
    FrozenChatParameters,
    ImageContent,
    Message,
    PreparedChatParameters,
    Role,
    TextContent,
    ToolChoiceType,
)
from .tool import ModelTurn, ToolCallRequest, ToolCallResult

__all__ = [
    "ChatParameters",
    "ContentPart",
    "FrozenChatParameters",
    "ImageContent",
    "Message",
    "PreparedChatParameters",
    "Role",
    "TextContent",
    "ToolChoiceType",
    "ModelTurn",
    "ToolCallRequest",
    "ToolCallResult",
]
