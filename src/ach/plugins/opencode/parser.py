"""OpenCode message and part rows to pre-turn events.

Every message row is its own turn: a user message becomes a user turn and
an assistant message an assistant turn built from its parts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from result import Err, Ok

from ach.data.events import (
    AssistantEvent,
    AssistantPart,
    ParseErrorEvent,
    PreTurnEvent,
    TextPart,
    ThinkingPart,
    ToolResult,
    ToolUsePart,
    TurnBoundary,
    UserEvent,
)
from ach.data.iso_time import epoch_ms_to_iso
from ach.data.jsonl import decode_json
from ach.data.turn_builder import TurnBuilder
from ach.data.values import as_dict, as_int, as_optional_int, as_str, json_type_name
from ach.models import Attachment, Session, TokenUsage, Turn
from ach.plugins.opencode.db import OpenCodeDatabase
from ach.plugins.opencode.discovery import PLUGIN_ID
from ach.plugins.opencode.schema import OpenCodeSchema

logger = logging.getLogger(__name__)

ID_PREFIX = "opencode"
INTERRUPTED_RESULT = "[Tool execution was interrupted]"


@dataclass(frozen=True)
class OpenCodeMessage:
    """A ``message`` row with its decoded ``part`` rows.

    ``ordinal`` is the 1-based position of the row in the session and plays
    the role of a line number for parse errors.
    """

    id: str
    ordinal: int
    time_created: int
    raw_data: str
    parts: tuple[dict[str, Any], ...] = ()


def opencode_events(messages: Iterable[OpenCodeMessage]) -> Iterator[PreTurnEvent]:
    for message in messages:
        timestamp = epoch_ms_to_iso(message.time_created)
        match decode_json(message.raw_data):
            case Ok(dict() as data):
                yield TurnBoundary()
                yield from _message_events(message, data, timestamp)
            case Ok(value):
                yield ParseErrorEvent(
                    line_number=message.ordinal,
                    raw_line=message.raw_data,
                    error_type="invalid_structure",
                    timestamp=timestamp,
                    details=f"Message data is {json_type_name(value)}, expected object",
                )
            case Err(error):
                yield ParseErrorEvent(
                    line_number=message.ordinal,
                    raw_line=message.raw_data,
                    error_type="json_parse",
                    timestamp=timestamp,
                    details=error,
                )


def build_opencode_turns(messages: Iterable[OpenCodeMessage]) -> list[Turn]:
    return TurnBuilder(id_prefix=ID_PREFIX).build(opencode_events(messages))


def _message_events(
    message: OpenCodeMessage, data: dict[str, Any], timestamp: str
) -> Iterator[PreTurnEvent]:
    match data.get("role"):
        case "user":
            texts = [
                as_str(part.get("text"))
                for part in message.parts
                if part.get("type") == "text" and not part.get("ignored")
            ]
            attachments = tuple(
                Attachment(media_type=as_str(part.get("mime")))
                for part in message.parts
                if part.get("type") == "file" and as_str(part.get("mime")).startswith("image/")
            )
            yield UserEvent(
                uuid=message.id,
                timestamp=timestamp,
                text="\n".join(texts),
                attachments=attachments,
            )
        case "assistant":
            yield AssistantEvent(
                uuid=message.id,
                timestamp=timestamp,
                model=as_str(data.get("modelID")) or "unknown",
                parts=tuple(_assistant_parts(message.parts)),
                usage=_usage(data.get("tokens")) or _step_finish_usage(message.parts),
                stop_reason=as_str(data.get("finish")) or None,
            )
        case role:
            logger.debug("Skipping OpenCode message %s with role %r", message.id, role)


def _assistant_parts(parts: Iterable[dict[str, Any]]) -> Iterator[AssistantPart]:
    for part in parts:
        match part.get("type"):
            case "text" if not part.get("ignored"):
                yield TextPart(text=as_str(part.get("text")))
            case "reasoning":
                yield ThinkingPart(text=as_str(part.get("text")))
            case "tool":
                yield _tool_part(part)
            case _:
                continue


def _tool_part(part: dict[str, Any]) -> ToolUsePart:
    state = as_dict(part.get("state"))
    match state.get("status"):
        case "completed":
            result = ToolResult(content=as_str(state.get("output")))
        case "error":
            result = ToolResult(content=as_str(state.get("error")), is_error=True)
        case _:
            # pending or running when the session ended
            result = ToolResult(content=INTERRUPTED_RESULT, is_error=True)
    return ToolUsePart(
        tool_use_id=as_str(part.get("callID")),
        name=as_str(part.get("tool")),
        input=as_dict(state.get("input")),
        inline_result=result,
    )


def _usage(tokens: object) -> TokenUsage | None:
    if not isinstance(tokens, dict):
        return None
    cache = as_dict(tokens.get("cache"))
    return TokenUsage(
        input_tokens=as_int(tokens.get("input")),
        output_tokens=as_int(tokens.get("output")),
        cache_read_tokens=as_optional_int(cache.get("read")),
        cache_creation_tokens=as_optional_int(cache.get("write")),
    )


def _step_finish_usage(parts: Iterable[dict[str, Any]]) -> TokenUsage | None:
    for part in parts:
        if part.get("type") == "step-finish":
            return _usage(part.get("tokens"))
    return None


async def read_messages(db: OpenCodeDatabase, session_id: str) -> list[OpenCodeMessage]:
    """Message rows of a session in creation order, parts attached."""
    message_rows = await db.fetch_all(
        """
        SELECT id, time_created, data FROM message
        WHERE session_id = ?
        ORDER BY time_created ASC, id ASC
        """,
        (session_id,),
    )
    if not message_rows:
        return []

    part_rows = await db.fetch_all(
        """
        SELECT id, message_id, data FROM part
        WHERE session_id = ?
        ORDER BY message_id, id ASC
        """,
        (session_id,),
    )
    parts_by_message: dict[str, list[dict[str, Any]]] = {}
    for row in part_rows:
        match decode_json(row["data"] or ""):
            case Ok(dict() as part):
                parts_by_message.setdefault(row["message_id"], []).append(part)
            case _:
                logger.debug("Skipping malformed OpenCode part %s", row["id"])

    return [
        OpenCodeMessage(
            id=row["id"],
            ordinal=ordinal,
            time_created=as_int(row["time_created"]),
            raw_data=row["data"] or "",
            parts=tuple(parts_by_message.get(row["id"], ())),
        )
        for ordinal, row in enumerate(message_rows, start=1)
    ]


async def load_opencode_session(
    db: OpenCodeDatabase, schema: OpenCodeSchema, native_id: str, session_id: str
) -> Session:
    project = native_id
    if "directory" in schema.session_columns:
        row = await db.fetch_one("SELECT directory FROM session WHERE id = ?", (session_id,))
        if row is not None and row["directory"]:
            project = row["directory"]

    messages = await read_messages(db, session_id)
    return Session(
        session_id=session_id,
        project=project,
        turns=build_opencode_turns(messages),
        plugin_id=PLUGIN_ID,
    )
