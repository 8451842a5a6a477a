"""Provider-neutral conversation and call configuration types."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from enum import Enum, StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from chat_gateway.names import sanitize_name

if TYPE_CHECKING:
    from chat_gateway.functions import LocalFunction
    from chat_gateway.providers import Provider


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class TextContent:
    text: str


@dataclass(frozen=True, slots=True)
class ImageContent:
    data: bytes
    mime_type: str

    def __repr__(self) -> str:
        return f"ImageContent(mime_type={self.mime_type!r}, size={len(self.data)})"


ContentPart = Union[TextContent, ImageContent]


@dataclass
class Message:
    """A single conversation turn: a role plus ordered content parts."""

    role: Role
    content: list[ContentPart]

    def __post_init__(self) -> None:
        if not self.content:
            raise ValueError("A message needs at least one content part")
        if self.role == Role.ASSISTANT and any(
            isinstance(part, ImageContent) for part in self.content
        ):
            raise ValueError("Assistant messages cannot carry images")

    @classmethod
    def from_text(cls, role: Role, text: str) -> "Message":
        return cls(role=role, content=[TextContent(text)])

    @classmethod
    def from_participant(cls, participant: str, text: str) -> "Message":
        """User turn tagged with the speaker, e.g. ``[[sikk]] Hallo``."""
        return cls.from_text(Role.USER, f"[[{sanitize_name(participant)}]] {text}")

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.content if isinstance(p, TextContent))

    @property
    def images(self) -> list[ImageContent]:
        return [p for p in self.content if isinstance(p, ImageContent)]


class ToolChoiceType(Enum):
    AUTO = "auto"
    NONE = "none"


@dataclass
class ChatParameters:
    """Portable, session-level call configuration."""

    # Sampling
    temperature: Optional[float] = None
    max_tokens: int = 1000
    top_k: Optional[int] = None
    top_p: Optional[float] = None

    # Tools
    tool_choice: ToolChoiceType = ToolChoiceType.AUTO
    disable_parallel_tool_use: bool = False
    enable_web_search: bool = False
    available_local_functions: list["LocalFunction"] = field(default_factory=list)

    # Text the answer starts with; backends that continue it return it as part of the answer
    prefill: Optional[str] = None
    # Reasoning models only ("low" | "medium" | "high")
    reasoning_effort: Optional[str] = None

    def snapshot(self) -> "FrozenChatParameters":
        """Read-only copy that later edits of this instance cannot reach."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["available_local_functions"] = tuple(self.available_local_functions)
        return FrozenChatParameters(**values)


@dataclass(frozen=True)
class FrozenChatParameters:
    """The fields of ChatParameters, fixed at ``prepare_parameters`` time."""

    temperature: Optional[float] = None
    max_tokens: int = 1000
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    tool_choice: ToolChoiceType = ToolChoiceType.AUTO
    disable_parallel_tool_use: bool = False
    enable_web_search: bool = False
    available_local_functions: tuple["LocalFunction", ...] = ()
    prefill: Optional[str] = None
    reasoning_effort: Optional[str] = None


@dataclass(frozen=True)
class PreparedChatParameters:
    """
    Backend-specific compiled form of a ChatParameters value.

    Built once by ``prepare_parameters`` and shared by every call that uses the
    same tool set. The request template is read-only; each call works on its
    own copy from ``request_kwargs``.
    """

    provider: "Provider"
    original: FrozenChatParameters
    request: Mapping[str, Any]

    def __post_init__(self) -> None:
        if isinstance(self.original, ChatParameters):
            object.__setattr__(self, "original", self.original.snapshot())
        if not isinstance(self.request, MappingProxyType):
            object.__setattr__(self, "request", MappingProxyType(dict(self.request)))

    def request_kwargs(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.request))

    def find_function(self, name: str) -> Optional["LocalFunction"]:
        for function in self.original.available_local_functions:
            if function.name == name:
                return function
        return None
