"""Data models for the bounded conversation context."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


# -- Constants --

SUPPORTED_SEGMENT_TYPES = frozenset({"text", "image_url"})


class Role(str, Enum):
    """Closed set of message authors."""
    SYSTEM = "system"
    HUMAN = "human"
    ASSISTANT = "assistant"
    TOOL = "tool"


# -- Content --

@dataclass(frozen=True)
class ContentSegment:
    """One typed piece of a multi-part message body."""
    type: str               # "text" | "image_url" | anything the provider sends
    value: Any              # str for text, str or dict for image_url


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Segments:
    items: tuple[ContentSegment, ...] = ()

    @classmethod
    def from_parts(cls, parts: list[dict]) -> "Segments":
        """Build from OpenAI-style parts: [{"type": "text", "text": "..."}, ...]."""
        return cls(tuple(
            ContentSegment(type=p.get("type", ""), value=p.get(p.get("type", "")))
            for p in parts
        ))


Content = Union[PlainText, Segments]


# -- Data Classes --

@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the assistant."""
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultRef:
    """Links a tool-result message back to the call that produced it."""
    tool_call_id: str
    tool_name: str | None = None


@dataclass(frozen=True)
class Message:
    """A single conversation message."""
    role: Role
    content: Content
    tool_calls: tuple[ToolCall, ...] = ()
    tool_result_ref: ToolResultRef | None = None
    reported_token_usage: Any = None  # provider running total, may be malformed

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(Role.SYSTEM, PlainText(text))

    @classmethod
    def human(cls, text: str) -> "Message":
        return cls(Role.HUMAN, PlainText(text))

    @classmethod
    def assistant(
        cls,
        text: str | Content = "",
        tool_calls: tuple[ToolCall, ...] | list[ToolCall] = (),
        reported_token_usage: Any = None,
    ) -> "Message":
        content = PlainText(text) if isinstance(text, str) else text
        return cls(
            Role.ASSISTANT,
            content,
            tool_calls=tuple(tool_calls),
            reported_token_usage=reported_token_usage,
        )

    @classmethod
    def tool_result(cls, tool_call_id: str, text: str, tool_name: str | None = None) -> "Message":
        return cls(Role.TOOL, PlainText(text), tool_result_ref=ToolResultRef(tool_call_id, tool_name))

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


Conversation = tuple[Message, ...]
