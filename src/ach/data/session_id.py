"""Composite session identifiers of the form ``<plugin-id>::<raw-id>``."""

from __future__ import annotations

from dataclasses import dataclass

SESSION_ID_SEPARATOR = "::"


@dataclass(frozen=True)
class ParsedSessionId:
    plugin_id: str | None
    raw_session_id: str


def encode_session_id(plugin_id: str, raw_session_id: str) -> str:
    return f"{plugin_id}{SESSION_ID_SEPARATOR}{raw_session_id}"


def parse_session_id(session_id: str) -> ParsedSessionId:
    """Split at the first separator only; raw ids may contain it too.

    Ids without a separator pass through with ``plugin_id=None``.
    """
    plugin_id, sep, raw = session_id.partition(SESSION_ID_SEPARATOR)
    if not sep:
        return ParsedSessionId(plugin_id=None, raw_session_id=session_id)
    return ParsedSessionId(plugin_id=plugin_id, raw_session_id=raw)
