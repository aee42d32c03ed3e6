"""Claude Code history adapter."""

from __future__ import annotations

import asyncio
from pathlib import Path

from ach.models import PluginProject, Session, SessionDetail, SessionSummary, SubAgentParams
from ach.plugins.claude_code.discovery import (
    PLUGIN_ID,
    discover_claude_projects,
    list_claude_sessions,
)
from ach.plugins.claude_code.linking import find_impl_session_id, find_plan_session_id
from ach.plugins.claude_code.parser import ParsedClaudeSession, parse_claude_file
from ach.plugins.claude_code.subagents import sub_agent_path
from ach.plugins.protocols import BaseToolPlugin


class ClaudeCodePlugin(BaseToolPlugin):
    """Reads ``<claude_dir>/projects``."""

    id = PLUGIN_ID
    display_name = "Claude Code"

    def __init__(self, claude_dir: Path | None = None) -> None:
        self.claude_dir = claude_dir or self.get_default_data_dir()

    def get_default_data_dir(self) -> Path:
        return Path.home() / ".claude"

    def is_data_available(self) -> bool:
        return self.projects_dir.is_dir()

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    async def discover_projects(self) -> list[PluginProject]:
        return await asyncio.to_thread(discover_claude_projects, self.projects_dir)

    async def list_sessions(self, native_id: str) -> list[SessionSummary]:
        return await asyncio.to_thread(list_claude_sessions, self.projects_dir, native_id)

    async def load_session(self, native_id: str, session_id: str) -> Session:
        parsed = await asyncio.to_thread(self._parse, native_id, session_id)
        if parsed is None:
            return self.empty_session(native_id, session_id)
        return self._session(native_id, session_id, parsed)

    async def load_session_detail(self, native_id: str, session_id: str) -> SessionDetail:
        """Load a session together with its plan/implementation counterparts."""
        parsed = await asyncio.to_thread(self._parse, native_id, session_id)
        if parsed is None:
            return SessionDetail(session=self.empty_session(native_id, session_id))

        siblings = await self.list_sessions(native_id)
        plan_id = find_plan_session_id(parsed.turns, parsed.slug, siblings, session_id)
        impl_id = find_impl_session_id(parsed.slug, siblings, session_id)
        session = self._session(native_id, session_id, parsed).model_copy(
            update={"plan_session_id": plan_id, "impl_session_id": impl_id}
        )
        return SessionDetail(session=session, plan_session_id=plan_id, impl_session_id=impl_id)

    async def load_sub_agent_session(self, params: SubAgentParams) -> Session:
        path = sub_agent_path(
            self.projects_dir, params.project, params.session_id, params.agent_id
        )
        parsed = await asyncio.to_thread(parse_claude_file, path)
        if parsed is None:
            return self.empty_session(params.project, params.session_id)
        return self._session(params.project, params.session_id, parsed)

    def get_resume_command(self, session_id: str) -> str:
        return f"claude --resume {session_id}"

    def _parse(self, native_id: str, session_id: str) -> ParsedClaudeSession | None:
        return parse_claude_file(self.projects_dir / native_id / f"{session_id}.jsonl")

    def _session(self, native_id: str, session_id: str, parsed: ParsedClaudeSession) -> Session:
        return Session(
            session_id=session_id,
            project=native_id,
            turns=parsed.turns,
            plugin_id=self.id,
        )
