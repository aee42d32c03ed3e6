"""The contract every history source adapter implements."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from ach.models import (
    PluginProject,
    Session,
    SessionDetail,
    SessionSummary,
    SubAgentParams,
)


@runtime_checkable
class ToolPlugin(Protocol):
    """Discovery, listing and loading for one coding-assistant tool."""

    id: str
    display_name: str

    def get_default_data_dir(self) -> Path | None: ...

    def is_data_available(self) -> bool: ...

    async def discover_projects(self) -> list[PluginProject]: ...

    async def list_sessions(self, native_id: str) -> list[SessionSummary]: ...

    async def load_session(self, native_id: str, session_id: str) -> Session: ...

    async def load_session_detail(self, native_id: str, session_id: str) -> SessionDetail: ...

    async def load_sub_agent_session(self, params: SubAgentParams) -> Session: ...

    def get_resume_command(self, session_id: str) -> str | None: ...


class BaseToolPlugin:
    """Defaults for the optional parts of :class:`ToolPlugin`.

    Subclasses set ``id``/``display_name`` and implement discovery,
    listing and loading.
    """

    id: str = ""
    display_name: str = ""

    def get_default_data_dir(self) -> Path | None:
        return None

    def is_data_available(self) -> bool:
        default_dir = self.get_default_data_dir()
        return default_dir is not None and default_dir.exists()

    async def discover_projects(self) -> list[PluginProject]:
        raise NotImplementedError

    async def list_sessions(self, native_id: str) -> list[SessionSummary]:
        raise NotImplementedError

    async def load_session(self, native_id: str, session_id: str) -> Session:
        raise NotImplementedError

    async def load_session_detail(self, native_id: str, session_id: str) -> SessionDetail:
        return SessionDetail(session=await self.load_session(native_id, session_id))

    async def load_sub_agent_session(self, params: SubAgentParams) -> Session:
        return Session(
            session_id=params.session_id,
            project=params.project,
            turns=[],
            plugin_id=self.id,
        )

    def get_resume_command(self, session_id: str) -> str | None:
        return None

    def empty_session(self, native_id: str, session_id: str) -> Session:
        return Session(session_id=session_id, project=native_id, turns=[], plugin_id=self.id)
