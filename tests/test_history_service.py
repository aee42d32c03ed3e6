"""Tests for HistoryService over the three fixture data trees."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from result import Err, Ok

from ach.config import Config
from ach.models import AssistantTurn, DashboardStats, ModelTokenUsage, UserTurn
from ach.registry import PluginRegistry
from ach.services.container import create_registry
from ach.services.history_service import HistoryService, project_name_from_path

APP = "-Users-dev-app"


@pytest.fixture
def service(test_config: Config) -> HistoryService:
    return HistoryService(create_registry(test_config))


def test_project_name_from_path() -> None:
    assert project_name_from_path("/Users/foo/work/app") == "work/app"
    assert project_name_from_path("/app") == "app"
    assert project_name_from_path("") == ""


class TestListing:
    @pytest.mark.asyncio
    async def test_list_projects(self, service: HistoryService) -> None:
        projects = (await service.list_projects()).unwrap()
        assert [project.encoded_path for project in projects] == [APP, "-Users-dev-other"]

    @pytest.mark.asyncio
    async def test_list_sessions(self, service: HistoryService) -> None:
        sessions = (await service.list_sessions(APP)).unwrap()
        assert [session.plugin_id for session in sessions] == [
            "opencode",
            "codex-cli",
            "claude-code",
            "claude-code",
        ]
        plan = sessions[-1]
        assert plan.session_id == "claude-code::sess-plan"
        assert plan.session_type == "plan"

    @pytest.mark.asyncio
    async def test_unknown_project_has_no_sessions(self, service: HistoryService) -> None:
        assert await service.list_sessions("-nope") == Ok([])

    @pytest.mark.asyncio
    async def test_search_sessions(self, service: HistoryService) -> None:
        results = (await service.search_sessions()).unwrap()
        assert [result.session_id for result in results] == [
            "opencode::ses_1",
            "codex-cli::0199a1b2-c3d4",
            "claude-code::sess-impl",
            "claude-code::sess-plan",
            "codex-cli::legacy-1",
        ]
        assert results[0].project_name == "dev/app"
        assert results[0].encoded_path == APP
        assert results[-1].project_name == "dev/other"
        assert results[-1].timestamp == "2026-02-19T07:33:20.000Z"

    @pytest.mark.asyncio
    async def test_empty_registry(self) -> None:
        service = HistoryService(PluginRegistry())
        assert await service.list_projects() == Ok([])
        assert await service.search_sessions() == Ok([])


class TestGetSession:
    @pytest.mark.asyncio
    async def test_implementation_session_links_to_plan(self, service: HistoryService) -> None:
        session = (await service.get_session("claude-code::sess-impl", APP)).unwrap()
        assert session.session_id == "claude-code::sess-impl"
        assert session.plugin_id == "claude-code"
        assert session.project == APP
        assert session.plan_session_id == "claude-code::sess-plan"
        assert session.impl_session_id is None

    @pytest.mark.asyncio
    async def test_plan_session_links_to_implementation(self, service: HistoryService) -> None:
        session = (await service.get_session("claude-code::sess-plan", APP)).unwrap()
        assert session.impl_session_id == "claude-code::sess-impl"
        assert session.plan_session_id is None

    @pytest.mark.asyncio
    async def test_codex_session(self, service: HistoryService) -> None:
        session = (await service.get_session("codex-cli::0199a1b2-c3d4", APP)).unwrap()
        assert session.session_id == "codex-cli::0199a1b2-c3d4"
        assert session.plugin_id == "codex-cli"
        user, assistant = session.turns
        assert isinstance(user, UserTurn)
        assert user.text == "List the files"
        assert isinstance(assistant, AssistantTurn)

    @pytest.mark.asyncio
    async def test_opencode_session(self, service: HistoryService) -> None:
        session = (await service.get_session("opencode::ses_1", APP)).unwrap()
        assert session.plugin_id == "opencode"
        assert session.project == "/Users/dev/app"
        assert session.turns

    @pytest.mark.asyncio
    async def test_invalid_session_id(self, service: HistoryService) -> None:
        result = await service.get_session("sess-plan", APP)
        assert result == Err("Invalid sessionId format: sess-plan")

    @pytest.mark.asyncio
    async def test_unknown_project(self, service: HistoryService) -> None:
        result = await service.get_session("claude-code::sess-plan", "-nope")
        assert result == Err("Project not found: -nope")

    @pytest.mark.asyncio
    async def test_project_without_that_tool(self, service: HistoryService) -> None:
        result = await service.get_session("opencode::ses_1", "-Users-dev-other")
        assert result == Err("No opencode source for project: -Users-dev-other")


class TestSubAgentAndResume:
    @pytest.mark.asyncio
    async def test_get_sub_agent(self, service: HistoryService) -> None:
        session = (
            await service.get_sub_agent("claude-code::sess-plan", APP, "abc123")
        ).unwrap()
        assert session.session_id == "claude-code::sess-plan"
        assert session.plugin_id == "claude-code"
        first = session.turns[0]
        assert isinstance(first, UserTurn)
        assert first.text == "explore the repo"

    @pytest.mark.asyncio
    async def test_sub_agent_of_tool_without_sub_agents(self, service: HistoryService) -> None:
        session = (
            await service.get_sub_agent("codex-cli::0199a1b2-c3d4", APP, "abc123")
        ).unwrap()
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_sub_agent_invalid_id(self, service: HistoryService) -> None:
        assert (await service.get_sub_agent("nope", APP, "abc123")).is_err()

    def test_get_resume_command(self, service: HistoryService) -> None:
        assert service.get_resume_command("claude-code::sess-plan") == Ok(
            "claude --resume sess-plan"
        )
        assert service.get_resume_command("codex-cli::abc") == Ok("codex resume abc")
        assert service.get_resume_command("opencode::ses_1") == Ok(None)
        assert service.get_resume_command("bogus::x") == Err("Plugin not found: bogus")
        assert service.get_resume_command("no-prefix") == Err(
            "Invalid sessionId format: no-prefix"
        )


class TestStats:
    NOW = datetime(2026, 2, 22, 12, 0, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_get_stats(self, service: HistoryService) -> None:
        stats = (await service.get_stats(now=self.NOW)).unwrap()
        assert stats.projects == 2
        assert stats.sessions == 5
        # Parse-error turns in sess-plan and ses_1 are not messages.
        assert stats.messages == 12
        assert stats.today_sessions == 1
        assert stats.this_week_sessions == 5
        assert stats.tool_calls == 6
        assert stats.input_tokens == 330
        assert stats.output_tokens == 160
        assert stats.cache_read_tokens == 555
        assert stats.cache_creation_tokens == 201

        assert set(stats.models) == {
            "claude-opus-4-6",
            "claude-sonnet-4",
            "gpt-5-codex",
            "o4-mini",
        }
        assert stats.models["claude-sonnet-4"] == ModelTokenUsage(
            input_tokens=17, output_tokens=23, cache_read_tokens=5, cache_creation_tokens=1
        )
        assert stats.models["o4-mini"] == ModelTokenUsage(input_tokens=13, output_tokens=7)

    @pytest.mark.asyncio
    async def test_failing_load_adds_nothing(
        self, test_config: Config, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        registry = create_registry(test_config)
        monkeypatch.setattr(
            registry.get_plugin("opencode"),
            "load_session",
            AsyncMock(side_effect=RuntimeError("locked")),
        )
        stats = (await HistoryService(registry).get_stats(now=self.NOW)).unwrap()
        assert stats.sessions == 5
        assert stats.messages == 9
        assert "claude-sonnet-4" not in stats.models

    @pytest.mark.asyncio
    async def test_empty_registry(self) -> None:
        stats = (await HistoryService(PluginRegistry()).get_stats()).unwrap()
        assert stats == DashboardStats()
