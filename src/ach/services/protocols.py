"""Protocol definitions for services."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from result import Result

from ach.models import DashboardStats, GlobalSessionResult, MergedProject, Session, SessionSummary


class HistoryServiceProtocol(Protocol):
    """Interface for history queries."""

    async def list_projects(self) -> Result[list[MergedProject], str]: ...

    async def list_sessions(self, encoded_path: str) -> Result[list[SessionSummary], str]: ...

    async def get_session(self, session_id: str, project: str) -> Result[Session, str]: ...

    async def get_sub_agent(
        self, session_id: str, project: str, agent_id: str
    ) -> Result[Session, str]: ...

    async def search_sessions(self) -> Result[list[GlobalSessionResult], str]: ...

    async def get_stats(self, now: datetime | None = None) -> Result[DashboardStats, str]: ...

    def get_resume_command(self, session_id: str) -> Result[str | None, str]: ...
