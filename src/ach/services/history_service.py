"""History service: the queries external collaborators run against the registry."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from ach.data.iso_time import sort_by_iso_desc
from ach.data.session_id import encode_session_id, parse_session_id
from ach.errors import (
    AchError,
    InvalidSessionIdError,
    ProjectNotFoundError,
    SourceNotFoundError,
)
from ach.models import (
    DashboardStats,
    GlobalSessionResult,
    MergedProject,
    ProjectSource,
    Session,
    SessionSummary,
    SubAgentParams,
    Turn,
)
from ach.services.stats import StatsCollector, count_recent_sessions

if TYPE_CHECKING:
    from ach.plugins.protocols import ToolPlugin
    from ach.registry import PluginRegistry

logger = logging.getLogger(__name__)


def project_name_from_path(full_path: str) -> str:
    """Last two path segments, e.g. ``/Users/foo/work/app`` -> ``work/app``."""
    parts = [part for part in full_path.split("/") if part]
    return "/".join(parts[-2:])


class HistoryService:
    """Service for project and session queries across all adapters."""

    def __init__(self, registry: PluginRegistry) -> None:
        self._registry = registry

    async def list_projects(self) -> Result[list[MergedProject], str]:
        """All projects merged by path, most recently active first."""
        return Ok(await self._registry.discover_all_projects())

    async def list_sessions(self, encoded_path: str) -> Result[list[SessionSummary], str]:
        """Sessions of one merged project; empty for an unknown project."""
        project = await self._registry.find_project(encoded_path)
        if project is None:
            logger.info("No project for %s", encoded_path)
            return Ok([])
        return Ok(await self._registry.list_all_sessions(project))

    async def get_session(self, session_id: str, project: str) -> Result[Session, str]:
        """Load a session by composite id, with composite plan/impl links."""
        try:
            plugin, source, raw_session_id = await self._resolve(session_id, project)
            detail = await plugin.load_session_detail(source.native_id, raw_session_id)
        except AchError as exc:
            return Err(str(exc))

        plan_id = detail.plan_session_id or detail.session.plan_session_id
        impl_id = detail.impl_session_id or detail.session.impl_session_id
        return Ok(
            detail.session.model_copy(
                update={
                    "session_id": encode_session_id(plugin.id, raw_session_id),
                    "plugin_id": plugin.id,
                    "plan_session_id": encode_session_id(plugin.id, plan_id) if plan_id else None,
                    "impl_session_id": encode_session_id(plugin.id, impl_id) if impl_id else None,
                }
            )
        )

    async def get_sub_agent(
        self, session_id: str, project: str, agent_id: str
    ) -> Result[Session, str]:
        """Transcript of a sub-agent spawned from ``session_id``."""
        try:
            plugin, source, raw_session_id = await self._resolve(session_id, project)
            session = await plugin.load_sub_agent_session(
                SubAgentParams(
                    session_id=raw_session_id,
                    project=source.native_id,
                    agent_id=agent_id,
                )
            )
        except AchError as exc:
            return Err(str(exc))
        return Ok(
            session.model_copy(
                update={
                    "session_id": encode_session_id(plugin.id, raw_session_id),
                    "plugin_id": plugin.id,
                }
            )
        )

    async def search_sessions(self) -> Result[list[GlobalSessionResult], str]:
        """Every session of every project, newest first."""
        results: list[GlobalSessionResult] = []
        for project in await self._registry.discover_all_projects():
            project_name = project_name_from_path(project.name)
            for summary in await self._registry.list_all_sessions(project):
                results.append(
                    GlobalSessionResult(
                        **summary.model_dump(),
                        encoded_path=project.encoded_path,
                        project_name=project_name,
                    )
                )
        return Ok(sort_by_iso_desc(results, lambda result: result.timestamp))

    async def get_stats(self, now: datetime | None = None) -> Result[DashboardStats, str]:
        """Dashboard counts and token totals over every session.

        Every session is loaded in full, so this is the most expensive query.
        A session whose adapter fails to load it adds no messages or tokens.
        """
        projects = await self._registry.discover_all_projects()
        collector = StatsCollector(projects=len(projects))
        summaries: list[SessionSummary] = []
        for project in projects:
            sessions = await self._registry.list_all_sessions(project)
            collector.sessions += len(sessions)
            for summary in sessions:
                summaries.append(summary)
                collector.add_turns(await self._session_turns(project, summary), summary.model)

        collector.today_sessions, collector.this_week_sessions = count_recent_sessions(
            summaries, now or datetime.now(UTC)
        )
        return Ok(collector.freeze())

    def get_resume_command(self, session_id: str) -> Result[str | None, str]:
        """Shell command that resumes the session in its tool, if it has one."""
        parsed = parse_session_id(session_id)
        if not parsed.plugin_id or not parsed.raw_session_id:
            return Err(str(InvalidSessionIdError(session_id)))
        try:
            plugin = self._registry.get_plugin(parsed.plugin_id)
        except AchError as exc:
            return Err(str(exc))
        return Ok(plugin.get_resume_command(parsed.raw_session_id))

    async def _resolve(
        self, session_id: str, encoded_path: str
    ) -> tuple[ToolPlugin, ProjectSource, str]:
        parsed = parse_session_id(session_id)
        if not parsed.plugin_id or not parsed.raw_session_id:
            raise InvalidSessionIdError(session_id)

        project = await self._registry.find_project(encoded_path)
        if project is None:
            raise ProjectNotFoundError(encoded_path)

        source = next(
            (source for source in project.sources if source.plugin_id == parsed.plugin_id),
            None,
        )
        if source is None:
            raise SourceNotFoundError(parsed.plugin_id, encoded_path)

        plugin = self._registry.get_plugin(parsed.plugin_id)
        return plugin, source, parsed.raw_session_id

    async def _session_turns(self, project: MergedProject, summary: SessionSummary) -> list[Turn]:
        parsed = parse_session_id(summary.session_id)
        source = next(
            (source for source in project.sources if source.plugin_id == parsed.plugin_id),
            None,
        )
        if source is None:
            return []
        plugin = self._registry.get_plugin(source.plugin_id)
        try:
            session = await plugin.load_session(source.native_id, parsed.raw_session_id)
        except Exception:
            logger.warning("Cannot load %s for stats", summary.session_id, exc_info=True)
            return []
        return session.turns
