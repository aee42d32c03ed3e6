"""Project models."""

from __future__ import annotations

from pydantic import Field

from ach.models.base import AchModel


class PluginProject(AchModel):
    """A project as one adapter sees it."""

    plugin_id: str
    native_id: str
    resolved_path: str
    display_name: str
    session_count: int = 0
    last_activity: str = ""


class ProjectSource(AchModel):
    plugin_id: str
    native_id: str


class MergedProject(AchModel):
    """All adapter projects that point at the same filesystem path."""

    encoded_path: str
    resolved_path: str
    name: str
    full_path: str
    session_count: int = 0
    last_activity: str = ""
    sources: list[ProjectSource] = Field(default_factory=list)
