"""Exceptions raised for caller-contract violations.

Data-quality problems (missing files, malformed lines) never raise; they
surface as empty results or parse-error turns instead.
"""

from __future__ import annotations


class AchError(Exception):
    """Base class for ach errors."""


class PluginNotFoundError(AchError):
    def __init__(self, plugin_id: str) -> None:
        super().__init__(f"Plugin not found: {plugin_id}")
        self.plugin_id = plugin_id


class InvalidSessionIdError(AchError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Invalid sessionId format: {session_id}")
        self.session_id = session_id


class ProjectNotFoundError(AchError):
    def __init__(self, project: str) -> None:
        super().__init__(f"Project not found: {project}")
        self.project = project


class SourceNotFoundError(AchError):
    def __init__(self, plugin_id: str, project: str) -> None:
        super().__init__(f"No {plugin_id} source for project: {project}")
        self.plugin_id = plugin_id
        self.project = project
