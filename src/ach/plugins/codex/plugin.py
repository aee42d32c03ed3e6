"""Codex CLI history adapter."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ach.models import PluginProject, Session, SessionSummary
from ach.plugins.codex.discovery import PLUGIN_ID, discover_codex_projects, list_codex_sessions
from ach.plugins.codex.parser import parse_codex_file
from ach.plugins.codex.session_index import find_session_file
from ach.plugins.protocols import BaseToolPlugin

logger = logging.getLogger(__name__)


class CodexPlugin(BaseToolPlugin):
    """Reads ``<codex_dir>/sessions/**/*.jsonl``."""

    id = PLUGIN_ID
    display_name = "Codex"

    def __init__(self, codex_dir: Path | None = None) -> None:
        self.codex_dir = codex_dir or self.get_default_data_dir()

    def get_default_data_dir(self) -> Path:
        return Path.home() / ".codex"

    def is_data_available(self) -> bool:
        return self.codex_dir.is_dir()

    @property
    def sessions_dir(self) -> Path:
        return self.codex_dir / "sessions"

    async def discover_projects(self) -> list[PluginProject]:
        return await asyncio.to_thread(discover_codex_projects, self.sessions_dir)

    async def list_sessions(self, native_id: str) -> list[SessionSummary]:
        return await asyncio.to_thread(list_codex_sessions, self.sessions_dir, native_id)

    async def load_session(self, native_id: str, session_id: str) -> Session:
        path = await asyncio.to_thread(find_session_file, self.sessions_dir, session_id)
        if path is None:
            logger.info("Codex session file not found for %s", session_id)
            return self.empty_session(native_id, session_id)
        return Session(
            session_id=session_id,
            project=native_id,
            turns=await asyncio.to_thread(parse_codex_file, path),
            plugin_id=self.id,
        )

    def get_resume_command(self, session_id: str) -> str:
        return f"codex resume {session_id}"
