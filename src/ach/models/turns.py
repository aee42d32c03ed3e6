"""Turn and content block models."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import Field

from ach.models.base import AchModel

ParseErrorType = Literal["json_parse", "invalid_structure"]


class TokenUsage(AchModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int | None = None
    cache_creation_tokens: int | None = None


class ToolResultImage(AchModel):
    media_type: str
    data: str


class ToolCallWithResult(AchModel):
    """A tool invocation joined with its result by ``tool_use_id``."""

    tool_use_id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    result: str = ""
    is_error: bool = False
    result_images: list[ToolResultImage] | None = None
    sub_agent_id: str | None = None


class TextBlock(AchModel):
    type: Literal["text"] = "text"
    text: str


class ThinkingBlock(AchModel):
    type: Literal["thinking"] = "thinking"
    text: str


class ToolCallBlock(AchModel):
    type: Literal["tool_call"] = "tool_call"
    call: ToolCallWithResult


ContentBlock = Annotated[TextBlock | ThinkingBlock | ToolCallBlock, Field(discriminator="type")]


class Attachment(AchModel):
    type: Literal["image"] = "image"
    media_type: str


class CommandInfo(AchModel):
    """A slash command the user typed, e.g. ``/review src``."""

    name: str
    args: str


class UserTurn(AchModel):
    kind: Literal["user"] = "user"
    uuid: str
    timestamp: str
    text: str
    command: CommandInfo | None = None
    attachments: list[Attachment] | None = None
    bash_input: str | None = None
    bash_stdout: str | None = None
    bash_stderr: str | None = None
    ide_opened_file: str | None = None


class AssistantTurn(AchModel):
    kind: Literal["assistant"] = "assistant"
    uuid: str
    timestamp: str
    model: str
    content_blocks: list[ContentBlock] = Field(default_factory=list)
    usage: TokenUsage | None = None
    stop_reason: str | None = None

    def tool_calls(self) -> list[ToolCallWithResult]:
        return [block.call for block in self.content_blocks if isinstance(block, ToolCallBlock)]


class SystemTurn(AchModel):
    kind: Literal["system"] = "system"
    uuid: str
    timestamp: str
    text: str


class ParseErrorTurn(AchModel):
    """A source record that could not be turned into a conversational turn."""

    kind: Literal["parse_error"] = "parse_error"
    uuid: str
    timestamp: str
    line_number: int
    raw_line: str
    error_type: ParseErrorType
    error_details: str | None = None


Turn = Annotated[
    UserTurn | AssistantTurn | SystemTurn | ParseErrorTurn, Field(discriminator="kind")
]
