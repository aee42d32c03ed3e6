"""Pydantic models for ach."""

from ach.models.projects import MergedProject, PluginProject, ProjectSource
from ach.models.sessions import (
    GlobalSessionResult,
    Session,
    SessionDetail,
    SessionSummary,
    SessionType,
    SubAgentParams,
)
from ach.models.stats import DashboardStats, ModelTokenUsage
from ach.models.turns import (
    AssistantTurn,
    Attachment,
    CommandInfo,
    ContentBlock,
    ParseErrorTurn,
    ParseErrorType,
    SystemTurn,
    TextBlock,
    ThinkingBlock,
    TokenUsage,
    ToolCallBlock,
    ToolCallWithResult,
    ToolResultImage,
    Turn,
    UserTurn,
)

__all__ = [
    "AssistantTurn",
    "Attachment",
    "CommandInfo",
    "ContentBlock",
    "DashboardStats",
    "GlobalSessionResult",
    "MergedProject",
    "ModelTokenUsage",
    "ParseErrorTurn",
    "ParseErrorType",
    "PluginProject",
    "ProjectSource",
    "Session",
    "SessionDetail",
    "SessionSummary",
    "SessionType",
    "SubAgentParams",
    "SystemTurn",
    "TextBlock",
    "ThinkingBlock",
    "TokenUsage",
    "ToolCallBlock",
    "ToolCallWithResult",
    "ToolResultImage",
    "Turn",
    "UserTurn",
]
