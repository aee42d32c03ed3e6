"""Discover Claude Code projects and list their sessions.

Layout: ``<claude_dir>/projects/<encoded-path>/<session-id>.jsonl`` where the
encoded path is the project directory with separators replaced by ``-``.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from result import Ok

from ach.data.iso_time import epoch_seconds_to_iso, max_iso, sort_by_iso_desc
from ach.data.jsonl import read_jsonl_head
from ach.data.values import as_dict, as_str
from ach.models import PluginProject, SessionSummary
from ach.plugins.claude_code.commands import clean_command_message, is_internal_message
from ach.plugins.claude_code.linking import UNKNOWN_SLUG, classify_session_types

logger = logging.getLogger(__name__)

PLUGIN_ID = "claude-code"
CWD_SCAN_LINES = 20
META_SCAN_LINES = 50
FIRST_MESSAGE_LIMIT = 200

_WINDOWS_DRIVE_RE = re.compile(r"^[A-Za-z]/")


@dataclass
class _SessionMeta:
    timestamp: str = ""
    slug: str = ""
    first_message: str = ""
    model: str = ""
    git_branch: str = ""

    @property
    def complete(self) -> bool:
        return all((self.timestamp, self.slug, self.first_message, self.model, self.git_branch))


def decode_encoded_path(encoded: str) -> str:
    """Best-effort inverse of Claude's directory naming.

    ``-Users-foo-bar`` -> ``/Users/foo/bar``; on Windows ``-C-Users-foo`` ->
    ``C:/Users/foo``. Dashes that were part of a name cannot be told apart,
    so the ``cwd`` recorded in session files is preferred when available.
    """
    if encoded.startswith("-"):
        with_slashes = encoded[1:].replace("-", "/")
        if sys.platform == "win32" and _WINDOWS_DRIVE_RE.match(with_slashes):
            return f"{with_slashes[0]}:{with_slashes[1:]}"
        return f"/{with_slashes}"
    return encoded.replace("-", "/")


def list_session_files(project_dir: Path) -> list[Path]:
    try:
        return sorted(path for path in project_dir.glob("*.jsonl") if path.is_file())
    except OSError as exc:
        logger.warning("Cannot list %s: %s", project_dir, exc)
        return []


def file_mtime_iso(path: Path) -> str:
    try:
        return epoch_seconds_to_iso(path.stat().st_mtime)
    except OSError:
        return ""


def extract_cwd(path: Path) -> str:
    """The first ``cwd`` recorded near the top of a session file."""
    for line in read_jsonl_head(path, CWD_SCAN_LINES):
        match line.parsed:
            case Ok({"cwd": str(cwd)}) if cwd:
                return cwd
    return ""


def discover_claude_projects(projects_dir: Path) -> list[PluginProject]:
    if not projects_dir.is_dir():
        logger.info("Claude projects directory not found: %s", projects_dir)
        return []

    projects: list[PluginProject] = []
    for entry in sorted(projects_dir.iterdir()):
        if not entry.is_dir():
            continue
        session_files = list_session_files(entry)
        if not session_files:
            continue

        resolved_path = ""
        for session_file in session_files:
            resolved_path = extract_cwd(session_file)
            if resolved_path:
                break
        resolved_path = resolved_path or decode_encoded_path(entry.name)

        projects.append(
            PluginProject(
                plugin_id=PLUGIN_ID,
                native_id=entry.name,
                resolved_path=resolved_path,
                display_name=resolved_path,
                session_count=len(session_files),
                last_activity=max_iso(file_mtime_iso(path) for path in session_files),
            )
        )

    return sort_by_iso_desc(projects, lambda project: project.last_activity)


def list_claude_sessions(projects_dir: Path, native_id: str) -> list[SessionSummary]:
    project_dir = projects_dir / native_id
    if not project_dir.is_dir():
        logger.info("Claude project directory not found: %s", project_dir)
        return []

    sessions: list[SessionSummary] = []
    for path in list_session_files(project_dir):
        meta = extract_session_meta(path)
        if meta is None:
            continue
        sessions.append(
            SessionSummary(
                session_id=path.stem,
                timestamp=meta.timestamp,
                slug=meta.slug or UNKNOWN_SLUG,
                first_message=meta.first_message,
                model=meta.model or "unknown",
                git_branch=meta.git_branch,
                plugin_id=PLUGIN_ID,
            )
        )

    return sort_by_iso_desc(classify_session_types(sessions), lambda session: session.timestamp)


def extract_session_meta(path: Path) -> _SessionMeta | None:
    """Listing metadata from the first lines of a session file.

    Returns ``None`` for files without a timestamp or a displayable first
    message (empty or command-only sessions).
    """
    meta = _SessionMeta()
    for line in read_jsonl_head(path, META_SCAN_LINES):
        match line.parsed:
            case Ok(dict() as record):
                _apply_meta(record, meta)
                if meta.complete:
                    break
    if not meta.timestamp or not meta.first_message:
        return None
    return meta


def _apply_meta(record: dict[str, Any], meta: _SessionMeta) -> None:
    meta.timestamp = meta.timestamp or as_str(record.get("timestamp"))
    meta.slug = meta.slug or as_str(record.get("slug"))
    meta.git_branch = meta.git_branch or as_str(record.get("gitBranch"))
    message = as_dict(record.get("message"))
    meta.model = meta.model or as_str(message.get("model"))

    if meta.first_message or record.get("type") != "user" or record.get("isMeta") or not message:
        return
    text = _first_text(message.get("content"))
    if text and not is_internal_message(text):
        meta.first_message = clean_command_message(text)[:FIRST_MESSAGE_LIMIT]


def _first_text(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                return as_str(block.get("text"))
    return ""
