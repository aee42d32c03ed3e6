"""Pre-turn events: the closed vocabulary adapters translate raw records into.

Each adapter maps its own record format onto these events and hands the
sequence to :class:`ach.data.turn_builder.TurnBuilder`, which owns all
merge, flush and correlation rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ach.models import Attachment, ParseErrorType, TokenUsage, ToolResultImage


@dataclass(frozen=True)
class ToolResult:
    content: str = ""
    is_error: bool = False
    images: tuple[ToolResultImage, ...] = ()


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ThinkingPart:
    text: str


@dataclass(frozen=True)
class ToolUsePart:
    """A tool invocation.

    ``tool_use_id`` may be empty, in which case the builder assigns one.
    ``inline_result`` is used when the source stores the result on the
    invocation itself and no :class:`ToolResultEvent` carries it.
    """

    tool_use_id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    inline_result: ToolResult | None = None


AssistantPart = TextPart | ThinkingPart | ToolUsePart


@dataclass(frozen=True)
class UserEvent:
    uuid: str
    timestamp: str
    text: str
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class ToolResultEvent:
    """A tool result. Never a turn boundary."""

    tool_use_id: str
    result: ToolResult


@dataclass(frozen=True)
class AssistantEvent:
    uuid: str
    timestamp: str
    model: str
    parts: tuple[AssistantPart, ...] = ()
    usage: TokenUsage | None = None
    stop_reason: str | None = None


@dataclass(frozen=True)
class UsageEvent:
    """Token usage reported separately from assistant content."""

    usage: TokenUsage


@dataclass(frozen=True)
class SystemEvent:
    uuid: str
    timestamp: str
    text: str


@dataclass(frozen=True)
class TurnBoundary:
    """Closes the in-progress assistant turn, optionally setting its usage first."""

    usage: TokenUsage | None = None


@dataclass(frozen=True)
class ParseErrorEvent:
    line_number: int
    raw_line: str
    error_type: ParseErrorType
    timestamp: str = ""
    details: str | None = None


PreTurnEvent = (
    UserEvent
    | ToolResultEvent
    | AssistantEvent
    | UsageEvent
    | SystemEvent
    | TurnBoundary
    | ParseErrorEvent
)
