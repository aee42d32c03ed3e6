"""Session-level models."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from ach.models.base import AchModel
from ach.models.turns import Turn

SessionType = Literal["plan", "implementation"]


class Session(AchModel):
    session_id: str
    project: str
    turns: list[Turn] = Field(default_factory=list)
    plugin_id: str | None = None
    plan_session_id: str | None = None
    impl_session_id: str | None = None


class SessionSummary(AchModel):
    """Lightweight listing record for a session."""

    session_id: str
    timestamp: str
    slug: str
    first_message: str
    model: str
    git_branch: str = ""
    session_type: SessionType | None = None
    plugin_id: str | None = None


class SessionDetail(AchModel):
    session: Session
    plan_session_id: str | None = None
    impl_session_id: str | None = None


class SubAgentParams(AchModel):
    session_id: str
    project: str
    agent_id: str


class GlobalSessionResult(SessionSummary):
    """A session summary annotated with the merged project it belongs to."""

    encoded_path: str
    project_name: str
