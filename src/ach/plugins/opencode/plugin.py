"""OpenCode history adapter."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from ach.models import PluginProject, Session, SessionSummary
from ach.plugins.opencode.db import OpenCodeDatabase
from ach.plugins.opencode.discovery import (
    PLUGIN_ID,
    discover_opencode_projects,
    list_opencode_sessions,
)
from ach.plugins.opencode.parser import load_opencode_session
from ach.plugins.opencode.schema import inspect_schema
from ach.plugins.protocols import BaseToolPlugin

logger = logging.getLogger(__name__)

DB_FILENAME = "opencode.db"


class OpenCodePlugin(BaseToolPlugin):
    """Reads ``<opencode_dir>/opencode.db``. OpenCode has no resume command."""

    id = PLUGIN_ID
    display_name = "OpenCode"

    def __init__(self, opencode_dir: Path | None = None) -> None:
        self.opencode_dir = opencode_dir or self.get_default_data_dir()

    def get_default_data_dir(self) -> Path:
        return Path.home() / ".local" / "share" / "opencode"

    def is_data_available(self) -> bool:
        return self.db_path.is_file()

    @property
    def db_path(self) -> Path:
        return self.opencode_dir / DB_FILENAME

    async def discover_projects(self) -> list[PluginProject]:
        if not self.is_data_available():
            logger.info("OpenCode database not found: %s", self.db_path)
            return []
        try:
            async with OpenCodeDatabase(self.db_path) as db:
                schema = await inspect_schema(db)
                return await discover_opencode_projects(db, schema)
        except aiosqlite.Error:
            logger.warning("Cannot read OpenCode database %s", self.db_path, exc_info=True)
            return []

    async def list_sessions(self, native_id: str) -> list[SessionSummary]:
        if not self.is_data_available():
            return []
        try:
            async with OpenCodeDatabase(self.db_path) as db:
                schema = await inspect_schema(db)
                return await list_opencode_sessions(db, schema, native_id)
        except aiosqlite.Error:
            logger.warning("Cannot list OpenCode sessions for %s", native_id, exc_info=True)
            return []

    async def load_session(self, native_id: str, session_id: str) -> Session:
        if not self.is_data_available():
            return self.empty_session(native_id, session_id)
        try:
            async with OpenCodeDatabase(self.db_path) as db:
                schema = await inspect_schema(db)
                if not schema.has_required_tables:
                    return self.empty_session(native_id, session_id)
                return await load_opencode_session(db, schema, native_id, session_id)
        except aiosqlite.Error:
            logger.warning("Cannot load OpenCode session %s", session_id, exc_info=True)
            return self.empty_session(native_id, session_id)
