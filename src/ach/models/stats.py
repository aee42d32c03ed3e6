"""Dashboard statistics models."""

from __future__ import annotations

from pydantic import Field

from ach.models.base import AchModel


class ModelTokenUsage(AchModel):
    """Token totals of the assistant turns produced by one model."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0


class DashboardStats(AchModel):
    """Counts and token totals across every session of every project.

    ``messages`` counts visible turns only; parse-error turns are excluded.
    """

    projects: int = 0
    sessions: int = 0
    messages: int = 0
    today_sessions: int = 0
    this_week_sessions: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    tool_calls: int = 0
    models: dict[str, ModelTokenUsage] = Field(default_factory=dict)
