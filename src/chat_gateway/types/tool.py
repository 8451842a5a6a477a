"""
Values exchanged between the tool loop and the adapters.

Adapters turn native responses into these and back; the loop itself never
sees a wire format.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = ["ToolCallRequest", "ToolCallResult", "ModelTurn"]


@dataclass(slots=True)
class ToolCallRequest:
    """One local function call requested by the model."""
    id: str
    name: str
    arguments: str | dict[str, Any]  # JSON text or an already decoded object


@dataclass(slots=True)
class ToolCallResult:
    """Text result of a tool call, sent back under the same id."""
    id: str
    content: str


@dataclass(slots=True)
class ModelTurn:
    """
    Neutral reading of a single backend response.

    Attributes:
        text: All text the model emitted in this response.
        tool_calls: Local function calls requested, in backend order.
        native_tool_calls: Tools the backend ran itself (e.g. web search).
        placeholder: Fixed marker for a refusal or truncation stop reason.
        needs_continuation: The backend paused and expects to be called again
            without any tool results.
    """
    text: str = ""
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    native_tool_calls: int = 0
    placeholder: Optional[str] = None
    needs_continuation: bool = False

    @property
    def tool_call_count(self) -> int:
        return len(self.tool_calls) + self.native_tool_calls
