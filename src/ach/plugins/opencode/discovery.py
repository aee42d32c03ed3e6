"""Discover OpenCode projects and list their sessions from SQLite."""

from __future__ import annotations

import logging
from typing import Any

from result import Ok

from ach.data.iso_time import epoch_ms_to_iso
from ach.data.jsonl import decode_json
from ach.data.values import as_str
from ach.models import PluginProject, SessionSummary
from ach.plugins.opencode.db import OpenCodeDatabase
from ach.plugins.opencode.schema import OpenCodeSchema

logger = logging.getLogger(__name__)

PLUGIN_ID = "opencode"
FIRST_MESSAGE_LIMIT = 200
TITLE_SCAN_MESSAGES = 5
MODEL_SCAN_MESSAGES = 10
DEFAULT_TITLE = "OpenCode session"


async def discover_opencode_projects(
    db: OpenCodeDatabase, schema: OpenCodeSchema
) -> list[PluginProject]:
    if not schema.has_required_tables:
        logger.info("OpenCode database lacks session/message/part tables")
        return []
    if schema.projects_from_table:
        return await _projects_from_table(db, schema)
    return await _projects_from_sessions(db, schema)


async def _projects_from_table(
    db: OpenCodeDatabase, schema: OpenCodeSchema
) -> list[PluginProject]:
    name_column = "p.name" if "name" in schema.project_columns else "NULL"
    rows = await db.fetch_all(
        f"""
        SELECT p.id AS id, p.worktree AS worktree, {name_column} AS name,
               count(s.id) AS session_count,
               coalesce(max(s.time_updated), max(s.time_created), p.time_created)
                   AS last_activity
        FROM project p
        LEFT JOIN session s ON s.project_id = p.id
        GROUP BY p.id
        HAVING session_count > 0
        ORDER BY last_activity DESC
        """
    )
    return [
        PluginProject(
            plugin_id=PLUGIN_ID,
            native_id=row["id"],
            resolved_path=row["worktree"],
            display_name=row["name"] or row["worktree"],
            session_count=row["session_count"],
            last_activity=epoch_ms_to_iso(row["last_activity"] or 0),
        )
        for row in rows
    ]


async def _projects_from_sessions(
    db: OpenCodeDatabase, schema: OpenCodeSchema
) -> list[PluginProject]:
    column = schema.session_group_column
    if column is None:
        logger.info("OpenCode sessions carry neither directory nor project_id")
        return []
    rows = await db.fetch_all(
        f"""
        SELECT {column} AS group_key,
               count(*) AS session_count,
               coalesce(max(time_updated), max(time_created)) AS last_activity
        FROM session
        GROUP BY {column}
        ORDER BY last_activity DESC
        """
    )
    return [
        PluginProject(
            plugin_id=PLUGIN_ID,
            native_id=row["group_key"],
            resolved_path=row["group_key"],
            display_name=row["group_key"],
            session_count=row["session_count"],
            last_activity=epoch_ms_to_iso(row["last_activity"] or 0),
        )
        for row in rows
        if row["group_key"]
    ]


def session_filter_column(schema: OpenCodeSchema) -> str | None:
    """The session column that holds the native project id used in discovery."""
    if schema.projects_from_table:
        return "project_id"
    return schema.session_group_column


async def list_opencode_sessions(
    db: OpenCodeDatabase, schema: OpenCodeSchema, native_id: str
) -> list[SessionSummary]:
    column = session_filter_column(schema)
    if not schema.has_required_tables or column is None:
        return []

    title_column = "title" if "title" in schema.session_columns else "''"
    slug_column = "slug" if "slug" in schema.session_columns else "id"
    rows = await db.fetch_all(
        f"""
        SELECT id, {title_column} AS title, {slug_column} AS slug, time_created
        FROM session
        WHERE {column} = ?
        ORDER BY time_created DESC
        """,
        (native_id,),
    )

    sessions: list[SessionSummary] = []
    for row in rows:
        title = row["title"] or await first_user_message(db, row["id"])
        sessions.append(
            SessionSummary(
                session_id=row["id"],
                timestamp=epoch_ms_to_iso(row["time_created"] or 0),
                slug=row["slug"] or row["id"],
                first_message=title or DEFAULT_TITLE,
                model=await session_model(db, row["id"]) or "unknown",
                git_branch="",
                plugin_id=PLUGIN_ID,
            )
        )
    return sessions


async def first_user_message(db: OpenCodeDatabase, session_id: str) -> str | None:
    """Text of the first text part of a user message among the first few."""
    for message_id, data in await _first_messages(db, session_id, TITLE_SCAN_MESSAGES):
        if data.get("role") != "user":
            continue
        parts = await db.fetch_all(
            "SELECT data FROM part WHERE message_id = ? ORDER BY id ASC", (message_id,)
        )
        for part in parts:
            match decode_json(part["data"] or ""):
                case Ok({"type": "text", "text": str(text)}) if text:
                    return text[:FIRST_MESSAGE_LIMIT]
    return None


async def session_model(db: OpenCodeDatabase, session_id: str) -> str:
    for _, data in await _first_messages(db, session_id, MODEL_SCAN_MESSAGES):
        model = as_str(data.get("modelID"))
        if data.get("role") == "assistant" and model:
            return model
    return ""


async def _first_messages(
    db: OpenCodeDatabase, session_id: str, limit: int
) -> list[tuple[str, dict[str, Any]]]:
    rows = await db.fetch_all(
        """
        SELECT id, data FROM message
        WHERE session_id = ?
        ORDER BY time_created ASC
        LIMIT ?
        """,
        (session_id, limit),
    )
    messages: list[tuple[str, dict[str, Any]]] = []
    for row in rows:
        match decode_json(row["data"] or ""):
            case Ok(dict() as data):
                messages.append((row["id"], data))
            case _:
                logger.debug("Skipping malformed OpenCode message %s", row["id"])
    return messages
