"""Registry of history adapters, merging their projects by filesystem path."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from typing import TypeVar

from ach.data.iso_time import max_iso, sort_by_iso_desc
from ach.data.session_id import encode_session_id
from ach.errors import PluginNotFoundError
from ach.models import MergedProject, PluginProject, ProjectSource, SessionSummary
from ach.plugins.protocols import ToolPlugin

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PATH_SEPARATORS_RE = re.compile(r"[/\\:]")


def encode_resolved_path(resolved_path: str) -> str:
    """``/Users/foo/bar`` -> ``-Users-foo-bar``, the Claude Code directory scheme."""
    if resolved_path.startswith("/"):
        return resolved_path.replace("/", "-")
    return _PATH_SEPARATORS_RE.sub("-", resolved_path)


class PluginRegistry:
    """Adapters by id. Populated once at startup and only read afterwards."""

    def __init__(self, encoder: Callable[[str, str], str] = encode_session_id) -> None:
        self._plugins: dict[str, ToolPlugin] = {}
        self._encode = encoder

    def register(self, plugin: ToolPlugin) -> None:
        self._plugins[plugin.id] = plugin

    def get_plugin(self, plugin_id: str) -> ToolPlugin:
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            raise PluginNotFoundError(plugin_id)
        return plugin

    def get_all_plugins(self) -> list[ToolPlugin]:
        return list(self._plugins.values())

    async def discover_all_projects(self) -> list[MergedProject]:
        """Projects of every adapter, merged by ``resolved_path``.

        A failing adapter contributes nothing. Sources keep registration
        order; the result is sorted newest first.
        """
        plugins = self.get_all_plugins()
        results = await asyncio.gather(
            *(plugin.discover_projects() for plugin in plugins), return_exceptions=True
        )

        by_path: dict[str, list[PluginProject]] = {}
        for plugin, projects in _successful(plugins, results, "discover projects"):
            for project in projects:
                by_path.setdefault(project.resolved_path, []).append(project)

        merged = [_merge(resolved_path, projects) for resolved_path, projects in by_path.items()]
        return sort_by_iso_desc(merged, lambda project: project.last_activity)

    async def list_all_sessions(self, project: MergedProject) -> list[SessionSummary]:
        """Sessions of every source of ``project`` with composite ids, newest first."""
        calls: list[tuple[ToolPlugin, ProjectSource]] = []
        for source in project.sources:
            plugin = self._plugins.get(source.plugin_id)
            if plugin is None:
                logger.debug("No adapter registered for %s", source.plugin_id)
                continue
            calls.append((plugin, source))

        plugins = [plugin for plugin, _ in calls]
        results = await asyncio.gather(
            *(plugin.list_sessions(source.native_id) for plugin, source in calls),
            return_exceptions=True,
        )

        sessions: list[SessionSummary] = []
        for plugin, summaries in _successful(plugins, results, "list sessions"):
            sessions.extend(
                summary.model_copy(
                    update={
                        "session_id": self._encode(plugin.id, summary.session_id),
                        "plugin_id": plugin.id,
                    }
                )
                for summary in summaries
            )
        return sort_by_iso_desc(sessions, lambda session: session.timestamp)

    async def find_project(self, encoded_path: str) -> MergedProject | None:
        for project in await self.discover_all_projects():
            if project.encoded_path == encoded_path:
                return project
        return None


def _merge(resolved_path: str, projects: list[PluginProject]) -> MergedProject:
    return MergedProject(
        encoded_path=encode_resolved_path(resolved_path),
        resolved_path=resolved_path,
        name=resolved_path,
        full_path=resolved_path,
        session_count=sum(project.session_count for project in projects),
        last_activity=max_iso(project.last_activity for project in projects),
        sources=[
            ProjectSource(plugin_id=project.plugin_id, native_id=project.native_id)
            for project in projects
        ],
    )


def _successful(
    plugins: Sequence[ToolPlugin],
    results: Sequence[T | BaseException],
    action: str,
) -> list[tuple[ToolPlugin, T]]:
    """Pair results with their plugins, logging and dropping failures."""
    successful: list[tuple[ToolPlugin, T]] = []
    for plugin, result in zip(plugins, results, strict=True):
        if isinstance(result, Exception):
            logger.warning("%s failed to %s", plugin.id, action, exc_info=result)
            continue
        if isinstance(result, BaseException):
            raise result
        successful.append((plugin, result))
    return successful
