"""Dashboard statistics: session counts, visible messages, tool calls and tokens."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from ach.models import (
    AssistantTurn,
    DashboardStats,
    ModelTokenUsage,
    SessionSummary,
    TokenUsage,
    Turn,
)

RECENT_DAYS = 7


def session_day(timestamp: str) -> date | None:
    """UTC calendar day of an ISO timestamp; ``None`` if it does not parse."""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).date()


def count_recent_sessions(
    sessions: Iterable[SessionSummary], now: datetime
) -> tuple[int, int]:
    """Sessions started today, and within the last ``RECENT_DAYS`` days (inclusive)."""
    today = now.astimezone(UTC).date()
    week_start = today - timedelta(days=RECENT_DAYS)
    today_count = week_count = 0
    for session in sessions:
        day = session_day(session.timestamp)
        if day is None:
            continue
        if day == today:
            today_count += 1
        if day >= week_start:
            week_count += 1
    return today_count, week_count


@dataclass
class _TokenTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0

    def add(self, usage: TokenUsage) -> None:
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.cache_read_tokens += usage.cache_read_tokens or 0
        self.cache_creation_tokens += usage.cache_creation_tokens or 0

    def freeze(self) -> ModelTokenUsage:
        return ModelTokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_read_tokens=self.cache_read_tokens,
            cache_creation_tokens=self.cache_creation_tokens,
        )


@dataclass
class StatsCollector:
    """Accumulates :class:`DashboardStats` one session at a time."""

    projects: int = 0
    sessions: int = 0
    messages: int = 0
    today_sessions: int = 0
    this_week_sessions: int = 0
    tool_calls: int = 0
    totals: _TokenTotals = field(default_factory=_TokenTotals)
    models: dict[str, _TokenTotals] = field(default_factory=dict)

    def add_turns(self, turns: Iterable[Turn], session_model: str = "") -> None:
        for turn in turns:
            if turn.kind == "parse_error":
                continue
            self.messages += 1
            if not isinstance(turn, AssistantTurn):
                continue

            self.tool_calls += len(turn.tool_calls())
            model = turn.model or session_model or "unknown"
            model_totals = self.models.setdefault(model, _TokenTotals())
            if turn.usage is not None:
                self.totals.add(turn.usage)
                model_totals.add(turn.usage)

    def freeze(self) -> DashboardStats:
        return DashboardStats(
            projects=self.projects,
            sessions=self.sessions,
            messages=self.messages,
            today_sessions=self.today_sessions,
            this_week_sessions=self.this_week_sessions,
            input_tokens=self.totals.input_tokens,
            output_tokens=self.totals.output_tokens,
            cache_read_tokens=self.totals.cache_read_tokens,
            cache_creation_tokens=self.totals.cache_creation_tokens,
            tool_calls=self.tool_calls,
            models={model: totals.freeze() for model, totals in self.models.items()},
        )
