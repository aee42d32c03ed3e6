"""Codex CLI session files: legacy and enveloped records to pre-turn events.

Legacy files hold flat records (``turn.started``, ``item.completed``,
``turn.completed``). Newer rollout files wrap everything in envelopes:
``{"type": "event_msg" | "response_item" | "turn_context", "payload": {...}}``.
Both are normalized here; turn building itself is shared.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
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
    ToolResultEvent,
    ToolUsePart,
    TurnBoundary,
    UsageEvent,
    UserEvent,
)
from ach.data.iso_time import epoch_seconds_to_iso
from ach.data.jsonl import JsonlLine, decode_json, read_jsonl
from ach.data.turn_builder import TurnBuilder
from ach.data.values import as_dict, as_int, as_optional_int, as_str, json_type_name
from ach.models import TokenUsage, Turn
from ach.plugins.codex.session_index import CodexSessionMeta, normalize_session_meta

logger = logging.getLogger(__name__)

ID_PREFIX = "codex"


class CodexEventNormalizer:
    """Turns the records of one Codex file into pre-turn events.

    Tracks the active model (``turn_context`` records can change it) and
    the number of legacy turns seen, since every legacy turn after the
    first starts with a user prompt the file does not record.
    """

    def __init__(self, model: str, session_timestamp: str) -> None:
        self.model = model
        self.session_timestamp = session_timestamp
        self._turn_count = 0

    def events(self, lines: Iterable[JsonlLine]) -> list[PreTurnEvent]:
        events: list[PreTurnEvent] = []
        for line in lines:
            match line.parsed:
                case Ok(dict() as record):
                    events.extend(self.normalize(record))
                case Ok(value):
                    events.append(
                        ParseErrorEvent(
                            line_number=line.line_number,
                            raw_line=line.raw,
                            error_type="invalid_structure",
                            timestamp=self.session_timestamp,
                            details=f"Record is {json_type_name(value)}, expected object",
                        )
                    )
                case Err(error):
                    events.append(
                        ParseErrorEvent(
                            line_number=line.line_number,
                            raw_line=line.raw,
                            error_type="json_parse",
                            timestamp=self.session_timestamp,
                            details=error,
                        )
                    )
        return events

    def normalize(self, record: dict[str, Any]) -> list[PreTurnEvent]:
        timestamp = as_str(record.get("timestamp")) or self.session_timestamp
        payload = as_dict(record.get("payload"))
        match as_str(record.get("type")):
            case "turn.started":
                return self._legacy_turn_started(timestamp)
            case "turn.completed":
                return [TurnBoundary(usage=_usage(record.get("usage")))]
            case "item.completed":
                item = record.get("item")
                if not isinstance(item, dict):
                    return []
                return [self._assistant(timestamp, _legacy_item_part(item))]
            case "event_msg":
                return self._event_msg(payload, timestamp)
            case "response_item":
                return self._response_item(payload, timestamp)
            case "turn_context":
                self.model = as_str(payload.get("model")) or self.model
                return []
            case _:
                return []

    def _legacy_turn_started(self, timestamp: str) -> list[PreTurnEvent]:
        self._turn_count += 1
        if self._turn_count > 1:
            return [UserEvent(uuid="", timestamp=timestamp, text="")]
        return [TurnBoundary()]

    def _event_msg(self, payload: dict[str, Any], timestamp: str) -> list[PreTurnEvent]:
        match as_str(payload.get("type")):
            case "task_started" | "task_complete":
                return [TurnBoundary()]
            case "user_message":
                text = as_str(payload.get("message")) or as_str(payload.get("text"))
                return [UserEvent(uuid="", timestamp=timestamp, text=text)]
            case "agent_message":
                text = as_str(payload.get("message")) or as_str(payload.get("text"))
                return [self._assistant(timestamp, TextPart(text=text))]
            case "agent_reasoning":
                return [self._assistant(timestamp, ThinkingPart(text=as_str(payload.get("text"))))]
            case "token_count":
                usage = _usage(as_dict(payload.get("info")).get("last_token_usage"))
                if usage is None and _has_token_counts(payload):
                    usage = _usage(payload)
                return [UsageEvent(usage=usage)] if usage is not None else []
            case _:
                return []

    def _response_item(self, payload: dict[str, Any], timestamp: str) -> list[PreTurnEvent]:
        match as_str(payload.get("type")):
            case "function_call" | "custom_tool_call":
                arguments = payload.get("arguments", payload.get("input"))
                part = ToolUsePart(
                    tool_use_id=as_str(payload.get("call_id")),
                    name=as_str(payload.get("name")) or "unknown",
                    input=parse_arguments(arguments),
                )
                return [self._assistant(timestamp, part)]
            case "function_call_output" | "custom_tool_call_output":
                call_id = as_str(payload.get("call_id"))
                if not call_id:
                    return []
                result = ToolResult(content=as_str(payload.get("output")))
                return [ToolResultEvent(tool_use_id=call_id, result=result)]
            case _:
                # "message" items duplicate the event_msg stream.
                return []

    def _assistant(self, timestamp: str, part: AssistantPart | None) -> AssistantEvent:
        return AssistantEvent(
            uuid="",
            timestamp=timestamp,
            model=self.model,
            parts=(part,) if part is not None else (),
        )


def parse_arguments(arguments: object) -> dict[str, Any]:
    """Tool arguments arrive as a JSON string or an object."""
    if isinstance(arguments, dict):
        return arguments
    if not isinstance(arguments, str) or not arguments:
        return {}
    match decode_json(arguments):
        case Ok(dict() as parsed):
            return parsed
        case _:
            return {"raw": arguments}


def build_codex_turns(
    lines: list[JsonlLine], meta: CodexSessionMeta | None
) -> list[Turn]:
    model = (meta.model if meta else "") or "unknown"
    timestamp = epoch_seconds_to_iso(meta.created) if meta else ""
    normalizer = CodexEventNormalizer(model, timestamp)
    builder = TurnBuilder(drop_empty_assistant=True, id_prefix=ID_PREFIX)
    return builder.build(normalizer.events(lines))


def parse_codex_file(path: Path) -> list[Turn]:
    """Parse one Codex session file; the metadata line is not a turn."""
    lines = read_jsonl(path)
    meta = None
    if lines and lines[0].line_number == 1:
        match lines[0].parsed:
            case Ok(record):
                meta = normalize_session_meta(record)
        if meta is not None:
            lines = lines[1:]
    if meta is None:
        logger.debug("No session metadata line in %s", path)
    return build_codex_turns(lines, meta)


def _legacy_item_part(item: dict[str, Any]) -> AssistantPart | None:
    match as_str(item.get("type")):
        case "agent_message":
            return TextPart(text=as_str(item.get("text")))
        case "reasoning":
            return ThinkingPart(text=as_str(item.get("text")))
        case "command_execution":
            exit_code = item.get("exit_code")
            return ToolUsePart(
                tool_use_id="",
                name="command_execution",
                input={"command": item.get("command")},
                inline_result=ToolResult(
                    content=as_str(item.get("aggregated_output")),
                    is_error=exit_code is not None and exit_code != 0,
                ),
            )
        case "file_change":
            return ToolUsePart(
                tool_use_id="",
                name="file_change",
                input={"changes": item.get("changes", [])},
            )
        case "mcp_tool_call":
            return ToolUsePart(
                tool_use_id="",
                name=as_str(item.get("tool")),
                input=as_dict(item.get("arguments")),
                inline_result=ToolResult(content=as_str(item.get("result"))),
            )
        case "web_search":
            return ToolUsePart(
                tool_use_id="",
                name="web_search",
                input={"query": item.get("query")},
            )
        case _:
            return None


def _usage(raw: object) -> TokenUsage | None:
    if not isinstance(raw, dict):
        return None
    return TokenUsage(
        input_tokens=as_int(raw.get("input_tokens")),
        output_tokens=as_int(raw.get("output_tokens")),
        cache_read_tokens=as_optional_int(raw.get("cached_input_tokens")),
    )


def _has_token_counts(raw: dict[str, Any]) -> bool:
    # Rate-limit-only updates carry "info": null and no counts.
    return "input_tokens" in raw or "output_tokens" in raw
