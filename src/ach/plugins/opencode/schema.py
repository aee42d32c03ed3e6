"""Introspect which OpenCode tables and columns exist.

OpenCode's schema has changed across releases, so queries are assembled
from what the database actually contains.
"""

from __future__ import annotations

from dataclasses import dataclass

from ach.plugins.opencode.db import OpenCodeDatabase

REQUIRED_TABLES = frozenset({"session", "message", "part"})


@dataclass(frozen=True)
class OpenCodeSchema:
    tables: frozenset[str]
    project_columns: frozenset[str]
    session_columns: frozenset[str]

    @property
    def has_required_tables(self) -> bool:
        return REQUIRED_TABLES <= self.tables

    @property
    def has_project_table(self) -> bool:
        return "project" in self.tables

    @property
    def projects_from_table(self) -> bool:
        """Projects come from ``project`` rows only when worktrees are recorded."""
        return self.has_project_table and "worktree" in self.project_columns

    @property
    def session_group_column(self) -> str | None:
        """Column used to group sessions when there is no usable project table."""
        if "directory" in self.session_columns:
            return "directory"
        if "project_id" in self.session_columns:
            return "project_id"
        return None


async def table_columns(db: OpenCodeDatabase, table: str) -> frozenset[str]:
    # PRAGMA arguments cannot be bound; table names come from sqlite_master.
    rows = await db.fetch_all(f"PRAGMA table_info({table})")
    return frozenset(row["name"] for row in rows)


async def inspect_schema(db: OpenCodeDatabase) -> OpenCodeSchema:
    rows = await db.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table'")
    tables = frozenset(row["name"] for row in rows)
    return OpenCodeSchema(
        tables=tables,
        project_columns=(
            await table_columns(db, "project") if "project" in tables else frozenset()
        ),
        session_columns=(
            await table_columns(db, "session") if "session" in tables else frozenset()
        ),
    )
