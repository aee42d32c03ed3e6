"""Shared state machine that folds pre-turn events into turns.

Rules, for every adapter:

- Tool results are correlated by id through a table built from all
  :class:`ToolResultEvent` s before any turn is emitted, so a result may
  appear before or after its invocation.
- Consecutive assistant events merge into one turn. Only user, system and
  explicit boundary events close it.
- Parse errors never interrupt the stream; they are appended after the
  conversational turns in line order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import assert_never

from ach.data.events import (
    AssistantEvent,
    ParseErrorEvent,
    PreTurnEvent,
    SystemEvent,
    TextPart,
    ThinkingPart,
    ToolResult,
    ToolResultEvent,
    ToolUsePart,
    TurnBoundary,
    UsageEvent,
    UserEvent,
)
from ach.models import (
    AssistantTurn,
    CommandInfo,
    ContentBlock,
    ParseErrorTurn,
    SystemTurn,
    TextBlock,
    ThinkingBlock,
    TokenUsage,
    ToolCallBlock,
    ToolCallWithResult,
    Turn,
    UserTurn,
)

logger = logging.getLogger(__name__)

RAW_LINE_LIMIT = 500
TRUNCATION_MARKER = "… (truncated)"


@dataclass(frozen=True)
class UserText:
    """What a user message's text turned out to be."""

    text: str
    command: CommandInfo | None = None
    bash_input: str | None = None
    bash_stdout: str | None = None
    bash_stderr: str | None = None
    ide_opened_file: str | None = None

    @property
    def is_bash_output(self) -> bool:
        return self.bash_input is None and (
            self.bash_stdout is not None or self.bash_stderr is not None
        )


UserTextClassifier = Callable[[str], UserText | None]
"""Returns ``None`` for protocol chatter that must not become a turn."""


def plain_user_text(text: str) -> UserText:
    return UserText(text=text)


def truncate_raw_line(line: str, limit: int = RAW_LINE_LIMIT) -> str:
    if len(line) <= limit:
        return line
    return f"{line[:limit]}{TRUNCATION_MARKER}"


def collect_tool_results(events: Iterable[PreTurnEvent]) -> dict[str, ToolResult]:
    """Index tool results by id. A later result for the same id wins."""
    return {
        event.tool_use_id: event.result
        for event in events
        if isinstance(event, ToolResultEvent)
    }


@dataclass
class _AssistantDraft:
    uuid: str
    timestamp: str
    model: str
    blocks: list[ContentBlock] = field(default_factory=list)
    usage: TokenUsage | None = None
    stop_reason: str | None = None

    def freeze(self) -> AssistantTurn:
        return AssistantTurn(
            uuid=self.uuid,
            timestamp=self.timestamp,
            model=self.model,
            content_blocks=list(self.blocks),
            usage=self.usage,
            stop_reason=self.stop_reason,
        )


class TurnBuilder:
    """Builds the turns of one session. Create a new builder per parse.

    Args:
        classify_user_text: Adapter hook deciding how user text is shown.
        sub_agent_ids: Tool use id to sub-agent id, applied to calls whose
            name is in ``sub_agent_tool_names``.
        drop_empty_assistant: Discard assistant turns without content blocks.
        id_prefix: When set, events without a uuid get deterministic ids
            ``<prefix>-user-N`` / ``<prefix>-assistant-N`` and tool uses
            without an id get ``<prefix>-tool-N``.
    """

    def __init__(
        self,
        *,
        classify_user_text: UserTextClassifier | None = None,
        sub_agent_ids: Mapping[str, str] | None = None,
        sub_agent_tool_names: frozenset[str] = frozenset({"Task"}),
        drop_empty_assistant: bool = False,
        id_prefix: str | None = None,
    ) -> None:
        self._classify = classify_user_text or plain_user_text
        self._sub_agent_ids = dict(sub_agent_ids or {})
        self._sub_agent_tool_names = sub_agent_tool_names
        self._drop_empty_assistant = drop_empty_assistant
        self._id_prefix = id_prefix

        self._tool_results: dict[str, ToolResult] = {}
        self._turns: list[Turn] = []
        self._errors: list[ParseErrorTurn] = []
        self._assistant: _AssistantDraft | None = None
        self._counters = {"user": 0, "assistant": 0, "tool": 0}
        self._used = False

    def build(self, events: Iterable[PreTurnEvent]) -> list[Turn]:
        if self._used:
            msg = "TurnBuilder is single-use; create a new one for each parse"
            raise RuntimeError(msg)
        self._used = True

        event_list = list(events)
        self._tool_results = collect_tool_results(event_list)
        for event in event_list:
            self._handle(event)
        self._flush()

        self._errors.sort(key=lambda turn: turn.line_number)
        if self._errors:
            logger.debug("Recorded %d parse errors", len(self._errors))
        return [*self._turns, *self._errors]

    def _handle(self, event: PreTurnEvent) -> None:
        match event:
            case ToolResultEvent():
                # Already indexed by collect_tool_results.
                return
            case UserEvent():
                self._on_user(event)
            case AssistantEvent():
                self._on_assistant(event)
            case UsageEvent(usage=usage):
                if self._assistant is not None:
                    self._assistant.usage = usage
            case SystemEvent(uuid=uuid, timestamp=timestamp, text=text):
                self._flush()
                self._turns.append(SystemTurn(uuid=uuid, timestamp=timestamp, text=text))
            case TurnBoundary(usage=usage):
                if usage is not None and self._assistant is not None:
                    self._assistant.usage = usage
                self._flush()
            case ParseErrorEvent():
                self._errors.append(
                    ParseErrorTurn(
                        uuid=f"parse-error-line-{event.line_number}",
                        timestamp=event.timestamp,
                        line_number=event.line_number,
                        raw_line=truncate_raw_line(event.raw_line),
                        error_type=event.error_type,
                        error_details=event.details,
                    )
                )
            case _:
                assert_never(event)

    def _on_user(self, event: UserEvent) -> None:
        self._flush()
        classified = self._classify(event.text)
        if classified is None:
            return

        previous = self._turns[-1] if self._turns else None
        if (
            classified.is_bash_output
            and isinstance(previous, UserTurn)
            and previous.bash_input is not None
            and previous.bash_stdout is None
            and previous.bash_stderr is None
        ):
            self._turns[-1] = previous.model_copy(
                update={
                    "bash_stdout": classified.bash_stdout,
                    "bash_stderr": classified.bash_stderr,
                }
            )
            return

        self._turns.append(
            UserTurn(
                uuid=event.uuid or self._next_id("user"),
                timestamp=event.timestamp,
                text=classified.text,
                command=classified.command,
                attachments=list(event.attachments) or None,
                bash_input=classified.bash_input,
                bash_stdout=classified.bash_stdout,
                bash_stderr=classified.bash_stderr,
                ide_opened_file=classified.ide_opened_file,
            )
        )

    def _on_assistant(self, event: AssistantEvent) -> None:
        if self._assistant is None:
            self._assistant = _AssistantDraft(
                uuid=event.uuid or self._next_id("assistant"),
                timestamp=event.timestamp,
                model=event.model,
            )
        draft = self._assistant
        if event.usage is not None:
            draft.usage = event.usage
        if event.stop_reason:
            draft.stop_reason = event.stop_reason

        for part in event.parts:
            match part:
                case TextPart(text=text):
                    if text.strip():
                        draft.blocks.append(TextBlock(text=text))
                case ThinkingPart(text=text):
                    draft.blocks.append(ThinkingBlock(text=text))
                case ToolUsePart():
                    draft.blocks.append(ToolCallBlock(call=self._tool_call(part)))
                case _:
                    assert_never(part)

    def _tool_call(self, part: ToolUsePart) -> ToolCallWithResult:
        tool_use_id = part.tool_use_id or self._next_id("tool")
        result = self._tool_results.get(part.tool_use_id) if part.tool_use_id else None
        if result is None:
            result = part.inline_result or ToolResult()

        sub_agent_id = None
        if part.name in self._sub_agent_tool_names:
            sub_agent_id = self._sub_agent_ids.get(tool_use_id)

        return ToolCallWithResult(
            tool_use_id=tool_use_id,
            name=part.name,
            input=dict(part.input),
            result=result.content,
            is_error=result.is_error,
            result_images=list(result.images) or None,
            sub_agent_id=sub_agent_id,
        )

    def _flush(self) -> None:
        draft, self._assistant = self._assistant, None
        if draft is None:
            return
        if self._drop_empty_assistant and not draft.blocks:
            return
        self._turns.append(draft.freeze())

    def _next_id(self, kind: str) -> str:
        self._counters[kind] += 1
        if self._id_prefix:
            return f"{self._id_prefix}-{kind}-{self._counters[kind]}"
        if kind == "tool":
            return f"tool-{self._counters[kind]}"
        return ""
