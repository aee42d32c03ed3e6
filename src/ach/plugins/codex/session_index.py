"""Locate Codex session files and read their metadata line.

Codex writes one JSONL file per session somewhere below
``<codex_dir>/sessions``. The first line describes the session, in one of
two shapes:

- legacy: ``{"uuid", "cwd", "timestamps": {"created", "updated"}, "model", ...}``
- enveloped: ``{"type": "session_meta", "payload": {"id", "cwd", "timestamp", ...}}``
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from result import Err, Ok

from ach.data.iso_time import epoch_seconds_to_iso
from ach.data.jsonl import decode_json, read_text
from ach.data.values import as_dict, as_str

logger = logging.getLogger(__name__)

FIRST_LINE_SCAN_BYTES = 64 * 1024


@dataclass(frozen=True)
class CodexSessionMeta:
    uuid: str
    cwd: str
    created: float
    updated: float
    model: str
    provider_id: str
    name: str = ""
    git_branch: str = ""


@dataclass(frozen=True)
class SessionFileInfo:
    path: Path
    meta: CodexSessionMeta
    mtime: str


def normalize_session_meta(
    record: object, file_mtime: float | None = None
) -> CodexSessionMeta | None:
    """Read either metadata shape; ``None`` if ``record`` is neither."""
    if not isinstance(record, dict):
        return None

    if isinstance(record.get("uuid"), str) and isinstance(record.get("cwd"), str):
        if "timestamps" not in record:
            return None
        timestamps = as_dict(record.get("timestamps"))
        created = _epoch(timestamps.get("created"))
        return CodexSessionMeta(
            uuid=record["uuid"],
            cwd=record["cwd"],
            created=created,
            updated=_epoch(timestamps.get("updated")) or created,
            model=as_str(record.get("model")),
            provider_id=as_str(record.get("provider_id")),
            name=as_str(record.get("name")),
        )

    payload = record.get("payload")
    if (
        record.get("type") == "session_meta"
        and isinstance(payload, dict)
        and isinstance(payload.get("id"), str)
        and isinstance(payload.get("cwd"), str)
    ):
        iso_timestamp = as_str(payload.get("timestamp")) or as_str(record.get("timestamp"))
        created = _iso_to_epoch(iso_timestamp)
        provider = as_str(payload.get("model_provider"))
        return CodexSessionMeta(
            uuid=payload["id"],
            cwd=payload["cwd"],
            created=created,
            updated=file_mtime if file_mtime is not None else created,
            model=as_str(payload.get("model")) or provider or "unknown",
            provider_id=provider or "unknown",
            git_branch=as_str(as_dict(payload.get("git")).get("branch")),
        )

    return None


def read_session_meta(path: Path) -> CodexSessionMeta | None:
    text = read_text(path, max_bytes=FIRST_LINE_SCAN_BYTES)
    if text is None:
        return None
    first_line = text.split("\n", 1)[0]
    if not first_line.strip():
        return None
    match decode_json(first_line):
        case Ok(record):
            try:
                mtime: float | None = path.stat().st_mtime
            except OSError:
                mtime = None
            return normalize_session_meta(record, mtime)
        case Err(error):
            logger.debug("Malformed Codex metadata in %s: %s", path, error)
            return None


def iter_session_files(sessions_dir: Path) -> Iterator[Path]:
    """All ``*.jsonl`` files below ``sessions_dir``, in a stable order."""
    if not sessions_dir.is_dir():
        return
    for root, dirs, files in os.walk(sessions_dir, onerror=_log_walk_error):
        dirs.sort()
        for name in sorted(files):
            if name.endswith(".jsonl"):
                yield Path(root) / name


def scan_codex_sessions(sessions_dir: Path) -> list[SessionFileInfo]:
    sessions: list[SessionFileInfo] = []
    for path in iter_session_files(sessions_dir):
        meta = read_session_meta(path)
        if meta is None:
            continue
        try:
            mtime = epoch_seconds_to_iso(path.stat().st_mtime)
        except OSError:
            continue
        sessions.append(SessionFileInfo(path=path, meta=meta, mtime=mtime))
    return sessions


def find_session_file(sessions_dir: Path, session_id: str) -> Path | None:
    """Find ``<id>.jsonl`` or ``<anything>-<id>.jsonl`` (rollout files)."""
    exact_name = f"{session_id}.jsonl"
    suffix = f"-{session_id}.jsonl"
    for path in iter_session_files(sessions_dir):
        if (path.name == exact_name or path.name.endswith(suffix)) and path.is_file():
            return path
    return None


def _epoch(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    return float(value)


def _iso_to_epoch(value: str) -> float:
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def _log_walk_error(exc: OSError) -> None:
    logger.warning("Cannot read Codex sessions directory: %s", exc)
