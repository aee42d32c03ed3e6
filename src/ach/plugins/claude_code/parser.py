"""Claude Code session files: JSONL records to pre-turn events."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from result import Err, Ok

from ach.data.events import (
    AssistantEvent,
    AssistantPart,
    ParseErrorEvent,
    PreTurnEvent,
    SystemEvent,
    TextPart,
    ThinkingPart,
    ToolResult,
    ToolResultEvent,
    ToolUsePart,
    UserEvent,
)
from ach.data.jsonl import JsonlLine, read_jsonl
from ach.data.turn_builder import TurnBuilder
from ach.data.values import (
    as_dict,
    as_int,
    as_optional_int,
    as_str,
    json_type_name,
)
from ach.models import Attachment, TokenUsage, ToolResultImage, Turn
from ach.plugins.claude_code.commands import classify_user_text
from ach.plugins.claude_code.subagents import extract_sub_agent_map

logger = logging.getLogger(__name__)

HIDDEN_RECORD_TYPES = frozenset({"progress", "file-history-snapshot", "summary"})


@dataclass(frozen=True)
class ParsedClaudeSession:
    turns: list[Turn]
    slug: str | None


def parse_claude_lines(lines: list[JsonlLine]) -> ParsedClaudeSession:
    """Build turns for the decoded lines of one session file."""
    records = list(iter_objects(lines))
    builder = TurnBuilder(
        classify_user_text=classify_user_text,
        sub_agent_ids=extract_sub_agent_map(records),
    )
    return ParsedClaudeSession(
        turns=builder.build(claude_events(lines)), slug=extract_slug(records)
    )


def parse_claude_file(path: Path) -> ParsedClaudeSession | None:
    """Parse a session file, or return ``None`` when it does not exist."""
    if not path.is_file():
        logger.info("Claude session file not found: %s", path)
        return None
    return parse_claude_lines(read_jsonl(path))


def iter_objects(lines: Iterable[JsonlLine]) -> Iterator[dict[str, Any]]:
    for line in lines:
        match line.parsed:
            case Ok(dict() as record):
                yield record


def extract_slug(records: Iterable[dict[str, Any]]) -> str | None:
    """The first slug found in the file."""
    for record in records:
        slug = as_str(record.get("slug"))
        if slug:
            return slug
    return None


def is_displayable(record: dict[str, Any]) -> bool:
    if record.get("type") in HIDDEN_RECORD_TYPES:
        return False
    if record.get("isMeta"):
        return False
    return isinstance(record.get("message"), dict)


def claude_events(lines: Iterable[JsonlLine]) -> list[PreTurnEvent]:
    """Translate decoded lines into pre-turn events.

    Parse errors carry the timestamp of the last record that had one, so
    they sort near the conversation they interrupted.
    """
    events: list[PreTurnEvent] = []
    last_timestamp = ""
    for line in lines:
        match line.parsed:
            case Err(error):
                events.append(
                    ParseErrorEvent(
                        line_number=line.line_number,
                        raw_line=line.raw,
                        error_type="json_parse",
                        timestamp=last_timestamp,
                        details=error,
                    )
                )
            case Ok(dict() as record):
                last_timestamp = as_str(record.get("timestamp")) or last_timestamp
                if is_displayable(record):
                    events.extend(_record_events(line, record))
            case Ok(value):
                events.append(
                    ParseErrorEvent(
                        line_number=line.line_number,
                        raw_line=line.raw,
                        error_type="invalid_structure",
                        timestamp=last_timestamp,
                        details=f"Record is {json_type_name(value)}, expected object",
                    )
                )
    return events


def _record_events(line: JsonlLine, record: dict[str, Any]) -> list[PreTurnEvent]:
    uuid = as_str(record.get("uuid"))
    timestamp = as_str(record.get("timestamp"))
    message = as_dict(record.get("message"))
    content = message.get("content")

    match record.get("type"):
        case "user":
            return _user_events(line, uuid, timestamp, content)
        case "assistant":
            if not isinstance(content, list):
                return [
                    _structure_error(
                        line,
                        timestamp,
                        f"Assistant message content is {json_type_name(content)}, expected array",
                    )
                ]
            return [
                AssistantEvent(
                    uuid=uuid,
                    timestamp=timestamp,
                    model=as_str(message.get("model")),
                    parts=tuple(_assistant_parts(content)),
                    usage=_usage(message.get("usage")),
                    stop_reason=as_str(message.get("stop_reason")) or None,
                )
            ]
        case "system":
            text = content if isinstance(content, str) else ""
            return [SystemEvent(uuid=uuid, timestamp=timestamp, text=text)]
        case _:
            return []


def _user_events(
    line: JsonlLine, uuid: str, timestamp: str, content: object
) -> list[PreTurnEvent]:
    if isinstance(content, str):
        return [UserEvent(uuid=uuid, timestamp=timestamp, text=content)]
    if not isinstance(content, list):
        return [
            _structure_error(
                line,
                timestamp,
                f"User message content is {json_type_name(content)}, expected string or array",
            )
        ]

    events: list[PreTurnEvent] = []
    texts: list[str] = []
    attachments: list[Attachment] = []
    tool_result_only = True
    for block in content:
        block = as_dict(block)
        block_type = block.get("type")
        if block_type == "tool_result":
            tool_use_id = as_str(block.get("tool_use_id"))
            if tool_use_id:
                events.append(ToolResultEvent(tool_use_id=tool_use_id, result=_tool_result(block)))
            continue
        tool_result_only = False
        if block_type == "text":
            texts.append(as_str(block.get("text")))
        elif block_type == "image" and isinstance(block.get("source"), dict):
            attachments.append(Attachment(media_type=as_str(block["source"].get("media_type"))))

    # Tool-result-only records are not conversational: no turn, no flush.
    if not tool_result_only:
        events.append(
            UserEvent(
                uuid=uuid,
                timestamp=timestamp,
                text="\n".join(texts),
                attachments=tuple(attachments),
            )
        )
    return events


def _assistant_parts(content: list[Any]) -> Iterator[AssistantPart]:
    for block in content:
        block = as_dict(block)
        match block.get("type"):
            case "thinking" if "thinking" in block:
                yield ThinkingPart(text=as_str(block["thinking"]))
            case "text":
                yield TextPart(text=as_str(block.get("text")))
            case "tool_use" if "id" in block:
                yield ToolUsePart(
                    tool_use_id=as_str(block["id"]),
                    name=as_str(block.get("name")),
                    input=as_dict(block.get("input")),
                )
            case _:
                continue


def _tool_result(block: dict[str, Any]) -> ToolResult:
    content = block.get("content")
    is_error = bool(block.get("is_error"))
    if isinstance(content, str):
        return ToolResult(content=content, is_error=is_error)
    if not isinstance(content, list):
        return ToolResult(is_error=is_error)

    texts: list[str] = []
    images: list[ToolResultImage] = []
    for part in content:
        part = as_dict(part)
        if part.get("type") == "text":
            texts.append(as_str(part.get("text")))
        elif part.get("type") == "image" and isinstance(part.get("source"), dict):
            source = part["source"]
            images.append(
                ToolResultImage(
                    media_type=as_str(source.get("media_type")),
                    data=as_str(source.get("data")),
                )
            )
    return ToolResult(content="\n".join(texts), is_error=is_error, images=tuple(images))


def _usage(raw: object) -> TokenUsage | None:
    if not isinstance(raw, dict):
        return None
    return TokenUsage(
        input_tokens=as_int(raw.get("input_tokens")),
        output_tokens=as_int(raw.get("output_tokens")),
        cache_read_tokens=as_optional_int(raw.get("cache_read_input_tokens")),
        cache_creation_tokens=as_optional_int(raw.get("cache_creation_input_tokens")),
    )


def _structure_error(line: JsonlLine, timestamp: str, details: str) -> ParseErrorEvent:
    return ParseErrorEvent(
        line_number=line.line_number,
        raw_line=line.raw,
        error_type="invalid_structure",
        timestamp=timestamp,
        details=details,
    )
