"""Typer CLI for ach: print normalized history as JSON."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from pydantic import BaseModel
from result import Err, Ok, Result

from ach.config import Config
from ach.services.container import ServiceContainer
from ach.services.protocols import HistoryServiceProtocol

T = TypeVar("T")

app = typer.Typer(
    name="ach",
    help="Agent Coding History: sessions from Claude Code, Codex and OpenCode as JSON.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    claude_dir: Annotated[
        Path | None,
        typer.Option("--claude-dir", help="Path to Claude Code data directory"),
    ] = None,
    codex_dir: Annotated[
        Path | None,
        typer.Option("--codex-dir", help="Path to Codex data directory"),
    ] = None,
    opencode_dir: Annotated[
        Path | None,
        typer.Option("--opencode-dir", help="Path to OpenCode data directory"),
    ] = None,
    disable: Annotated[
        list[str] | None,
        typer.Option("--disable", help="Plugin id to skip (repeatable)"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    defaults = Config()
    ctx.obj = Config(
        claude_dir=claude_dir or defaults.claude_dir,
        codex_dir=codex_dir or defaults.codex_dir,
        opencode_dir=opencode_dir or defaults.opencode_dir,
        disabled_plugins=frozenset(disable or ()),
    )


@app.command()
def projects(ctx: typer.Context) -> None:
    """List projects merged across all tools."""
    _run(ctx, lambda service: service.list_projects())


@app.command()
def sessions(
    ctx: typer.Context,
    encoded_path: Annotated[
        str, typer.Option("--project", "-p", help="Encoded project path, e.g. -Users-me-app")
    ],
) -> None:
    """List the sessions of one project."""
    _run(ctx, lambda service: service.list_sessions(encoded_path))


@app.command()
def show(
    ctx: typer.Context,
    session_id: Annotated[str, typer.Argument(help="Composite id, e.g. claude-code::abc")],
    project: Annotated[str, typer.Option("--project", "-p", help="Encoded project path")],
) -> None:
    """Print one session with all its turns."""
    _run(ctx, lambda service: service.get_session(session_id, project))


@app.command()
def subagent(
    ctx: typer.Context,
    session_id: Annotated[str, typer.Argument(help="Composite id of the parent session")],
    agent_id: Annotated[str, typer.Argument(help="Sub-agent id")],
    project: Annotated[str, typer.Option("--project", "-p", help="Encoded project path")],
) -> None:
    """Print the transcript of a sub-agent."""
    _run(ctx, lambda service: service.get_sub_agent(session_id, project, agent_id))


@app.command()
def search(ctx: typer.Context) -> None:
    """List every session of every project, newest first."""
    _run(ctx, lambda service: service.search_sessions())


@app.command()
def stats(ctx: typer.Context) -> None:
    """Print session, message, tool-call and token totals."""
    _run(ctx, lambda service: service.get_stats())


@app.command()
def resume(
    ctx: typer.Context,
    session_id: Annotated[str, typer.Argument(help="Composite id, e.g. codex-cli::abc")],
) -> None:
    """Print the shell command that resumes a session."""
    container = ServiceContainer.create(ctx.obj)
    match container.history_service.get_resume_command(session_id):
        case Ok(str(command)):
            typer.echo(command)
        case Ok(None):
            typer.echo("This tool has no resume command", err=True)
            raise typer.Exit(code=1)
        case Err(error):
            typer.echo(error, err=True)
            raise typer.Exit(code=1)


def _run(
    ctx: typer.Context,
    query: Callable[[HistoryServiceProtocol], Awaitable[Result[T, str]]],
) -> None:
    result = asyncio.run(_query(ctx.obj, query))
    match result:
        case Ok(value):
            typer.echo(json.dumps(to_json(value), indent=2, ensure_ascii=False))
        case Err(error):
            typer.echo(error, err=True)
            raise typer.Exit(code=1)


async def _query(
    config: Config, query: Callable[[HistoryServiceProtocol], Awaitable[Result[T, str]]]
) -> Result[T, str]:
    container = ServiceContainer.create(config)
    return await query(container.history_service)


def to_json(value: Any) -> Any:
    """Dump models with their camelCase field names, omitting unset optionals."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, list):
        return [to_json(item) for item in value]
    return value
