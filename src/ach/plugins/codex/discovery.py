"""Discover Codex projects (one per working directory) and list sessions."""

from __future__ import annotations

import logging
from pathlib import Path

from ach.data.iso_time import epoch_seconds_to_iso, max_iso, sort_by_iso_desc
from ach.data.jsonl import iter_records, read_text
from ach.data.values import as_dict, as_str
from ach.models import PluginProject, SessionSummary
from ach.plugins.codex.session_index import SessionFileInfo, scan_codex_sessions

logger = logging.getLogger(__name__)

PLUGIN_ID = "codex-cli"
SESSION_TITLE_SCAN_BYTES = 256 * 1024
FIRST_MESSAGE_LIMIT = 200
DEFAULT_TITLE = "Codex session"


def discover_codex_projects(sessions_dir: Path) -> list[PluginProject]:
    if not sessions_dir.is_dir():
        logger.info("Codex sessions directory not found: %s", sessions_dir)
        return []

    by_cwd: dict[str, list[SessionFileInfo]] = {}
    for info in scan_codex_sessions(sessions_dir):
        by_cwd.setdefault(info.meta.cwd, []).append(info)

    projects = [
        PluginProject(
            plugin_id=PLUGIN_ID,
            native_id=cwd,
            resolved_path=cwd,
            display_name=cwd,
            session_count=len(infos),
            last_activity=max_iso(info.mtime for info in infos),
        )
        for cwd, infos in by_cwd.items()
    ]
    return sort_by_iso_desc(projects, lambda project: project.last_activity)


def list_codex_sessions(sessions_dir: Path, native_id: str) -> list[SessionSummary]:
    sessions = [
        SessionSummary(
            session_id=info.meta.uuid,
            timestamp=epoch_seconds_to_iso(info.meta.created),
            slug=info.meta.uuid,
            first_message=_session_title(info),
            model=info.meta.model or "unknown",
            git_branch=info.meta.git_branch,
            plugin_id=PLUGIN_ID,
        )
        for info in scan_codex_sessions(sessions_dir)
        if info.meta.cwd == native_id
    ]
    return sort_by_iso_desc(sessions, lambda session: session.timestamp)


def extract_first_message(text: str) -> str | None:
    """First agent message (legacy) or user message (enveloped) after line 1."""
    for line_number, record in iter_records(text):
        if line_number == 1:
            continue
        record_type = record.get("type")
        if record_type == "item.completed":
            item = as_dict(record.get("item"))
            message = as_str(item.get("text"))
            if item.get("type") == "agent_message" and message:
                return message[:FIRST_MESSAGE_LIMIT]
        elif record_type == "event_msg":
            payload = as_dict(record.get("payload"))
            message = as_str(payload.get("message")) or as_str(payload.get("text"))
            if payload.get("type") == "user_message" and message:
                return message[:FIRST_MESSAGE_LIMIT]
    return None


def _session_title(info: SessionFileInfo) -> str:
    if info.meta.name:
        return info.meta.name
    prefix = read_text(info.path, max_bytes=SESSION_TITLE_SCAN_BYTES) or ""
    title = extract_first_message(prefix)
    if title is None and len(prefix.encode("utf-8")) >= SESSION_TITLE_SCAN_BYTES:
        title = extract_first_message(read_text(info.path) or "")
    return title or DEFAULT_TITLE
