"""Shared fixtures for ach tests.

The fixtures write small but realistic data trees for all three tools. The
Claude Code, Codex and OpenCode data all contain a project at
``/Users/dev/app`` so registry merging can be exercised end to end.
"""

from __future__ import annotations

import json
import os
import sqlite3
from pathlib import Path
from typing import Any

import pytest

from ach.config import Config

PROJECT_PATH = "/Users/dev/app"
OTHER_PROJECT_PATH = "/Users/dev/other"

# 2026-02-20T10:00:00Z, 2026-02-21T10:00:00Z, 2026-02-19T07:33:20Z
CLAUDE_MTIME = 1771581600
CODEX_MTIME = 1771668000
CODEX_LEGACY_MTIME = 1771486400
# 2026-02-22T09:00:00Z / 10:00:00Z in epoch milliseconds
OPENCODE_CREATED_MS = 1771750800000
OPENCODE_UPDATED_MS = 1771754400000

CODEX_SESSION_ID = "0199a1b2-c3d4"
CODEX_LEGACY_ID = "legacy-1"


def _write_lines(path: Path, lines: list[Any], mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(line if isinstance(line, str) else json.dumps(line) for line in lines)
    path.write_text(text + "\n", encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


PLAN_SESSION_LINES: list[Any] = [
    {
        "type": "user",
        "uuid": "u1",
        "timestamp": "2026-02-20T09:00:00.000Z",
        "cwd": PROJECT_PATH,
        "slug": "feat-1",
        "gitBranch": "main",
        "message": {"role": "user", "content": "Plan feat 1"},
    },
    {
        "type": "assistant",
        "uuid": "a1",
        "timestamp": "2026-02-20T09:00:05.000Z",
        "slug": "feat-1",
        "message": {
            "role": "assistant",
            "model": "claude-opus-4-6",
            "content": [
                {"type": "thinking", "thinking": "Planning the feature"},
                {"type": "text", "text": "Here is the plan."},
                {
                    "type": "tool_use",
                    "id": "toolu_task",
                    "name": "Task",
                    "input": {"prompt": "explore the repo"},
                },
            ],
            "usage": {
                "input_tokens": 100,
                "output_tokens": 50,
                "cache_read_input_tokens": 500,
                "cache_creation_input_tokens": 200,
            },
            "stop_reason": "tool_use",
        },
    },
    {
        "type": "progress",
        "timestamp": "2026-02-20T09:00:06.000Z",
        "parentToolUseID": "toolu_task",
        "data": {"type": "agent_progress", "agentId": "abc123"},
    },
    {
        "type": "user",
        "uuid": "u2",
        "timestamp": "2026-02-20T09:00:10.000Z",
        "message": {
            "role": "user",
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": "toolu_task",
                    "content": [{"type": "text", "text": "Explored."}],
                }
            ],
        },
    },
    {
        "type": "assistant",
        "uuid": "a2",
        "timestamp": "2026-02-20T09:00:15.000Z",
        "message": {
            "role": "assistant",
            "model": "claude-opus-4-6",
            "content": [{"type": "text", "text": "Done exploring."}],
            "stop_reason": "end_turn",
        },
    },
    "{not json",
]

IMPL_SESSION_LINES: list[Any] = [
    {
        "type": "user",
        "uuid": "u10",
        "timestamp": "2026-02-20T09:30:00.000Z",
        "cwd": PROJECT_PATH,
        "slug": "feat-1",
        "gitBranch": "main",
        "message": {"role": "user", "content": "Implement the following plan:\n\nDo it"},
    },
    {
        "type": "assistant",
        "uuid": "a10",
        "timestamp": "2026-02-20T09:30:05.000Z",
        "message": {
            "role": "assistant",
            "model": "claude-opus-4-6",
            "content": [{"type": "text", "text": "On it."}],
        },
    },
]

SUB_AGENT_LINES: list[Any] = [
    {
        "type": "user",
        "uuid": "s1",
        "timestamp": "2026-02-20T09:00:07.000Z",
        "message": {"role": "user", "content": "explore the repo"},
    },
    {
        "type": "assistant",
        "uuid": "s2",
        "timestamp": "2026-02-20T09:00:08.000Z",
        "message": {
            "role": "assistant",
            "model": "claude-haiku-4-5",
            "content": [{"type": "text", "text": "The repo has two packages."}],
        },
    },
]

CODEX_SESSION_LINES: list[Any] = [
    {
        "timestamp": "2026-02-21T10:00:00.000Z",
        "type": "session_meta",
        "payload": {
            "id": CODEX_SESSION_ID,
            "cwd": PROJECT_PATH,
            "timestamp": "2026-02-21T10:00:00.000Z",
            "model_provider": "openai",
            "git": {"branch": "feature/x"},
        },
    },
    {
        "timestamp": "2026-02-21T10:00:01.000Z",
        "type": "turn_context",
        "payload": {"model": "gpt-5-codex"},
    },
    {
        "timestamp": "2026-02-21T10:00:01.000Z",
        "type": "event_msg",
        "payload": {"type": "task_started"},
    },
    {
        "timestamp": "2026-02-21T10:00:02.000Z",
        "type": "event_msg",
        "payload": {"type": "user_message", "message": "List the files"},
    },
    {
        "timestamp": "2026-02-21T10:00:03.000Z",
        "type": "event_msg",
        "payload": {"type": "agent_reasoning", "text": "Need ls"},
    },
    {
        "timestamp": "2026-02-21T10:00:04.000Z",
        "type": "response_item",
        "payload": {
            "type": "function_call",
            "name": "shell",
            "arguments": '{"command": ["ls"]}',
            "call_id": "call_abc",
        },
    },
    {
        "timestamp": "2026-02-21T10:00:05.000Z",
        "type": "response_item",
        "payload": {
            "type": "function_call_output",
            "call_id": "call_abc",
            "output": "file1.ts\nfile2.ts",
        },
    },
    {
        "timestamp": "2026-02-21T10:00:06.000Z",
        "type": "event_msg",
        "payload": {"type": "agent_message", "message": "Two files."},
    },
    {
        "timestamp": "2026-02-21T10:00:07.000Z",
        "type": "event_msg",
        "payload": {
            "type": "token_count",
            "info": {
                "last_token_usage": {
                    "input_tokens": 200,
                    "cached_input_tokens": 50,
                    "output_tokens": 80,
                }
            },
        },
    },
    {
        "timestamp": "2026-02-21T10:00:08.000Z",
        "type": "event_msg",
        "payload": {"type": "task_complete"},
    },
]

CODEX_LEGACY_LINES: list[Any] = [
    {
        "uuid": CODEX_LEGACY_ID,
        "cwd": OTHER_PROJECT_PATH,
        "timestamps": {"created": 1771486400, "updated": 1771486500},
        "model": "o4-mini",
        "provider_id": "openai",
    },
    {"type": "turn.started"},
    {"type": "item.completed", "item": {"type": "reasoning", "text": "Run the tests"}},
    {
        "type": "item.completed",
        "item": {
            "type": "command_execution",
            "command": "npm test",
            "aggregated_output": "FAIL",
            "exit_code": 1,
        },
    },
    {"type": "item.completed", "item": {"type": "agent_message", "text": "Tests fail."}},
    {"type": "turn.completed", "usage": {"input_tokens": 10, "output_tokens": 5}},
    {"type": "turn.started"},
    {"type": "item.completed", "item": {"type": "agent_message", "text": "Second turn."}},
    {"type": "turn.completed", "usage": {"input_tokens": 3, "output_tokens": 2}},
]


@pytest.fixture
def claude_dir(tmp_path: Path) -> Path:
    """A Claude Code data dir with a plan session, its implementation and a sub-agent."""
    claude_dir = tmp_path / ".claude"
    project_dir = claude_dir / "projects" / "-Users-dev-app"
    _write_lines(project_dir / "sess-plan.jsonl", PLAN_SESSION_LINES, CLAUDE_MTIME)
    _write_lines(project_dir / "sess-impl.jsonl", IMPL_SESSION_LINES, CLAUDE_MTIME)
    _write_lines(
        project_dir / "sess-plan" / "subagents" / "agent-abc123.jsonl", SUB_AGENT_LINES
    )
    return claude_dir


@pytest.fixture
def codex_dir(tmp_path: Path) -> Path:
    """A Codex data dir with one enveloped rollout file and one legacy file."""
    codex_dir = tmp_path / ".codex"
    sessions_dir = codex_dir / "sessions"
    day_dir = sessions_dir / "2026" / "02" / "21"
    _write_lines(
        day_dir / f"rollout-2026-02-21T10-00-00-{CODEX_SESSION_ID}.jsonl",
        CODEX_SESSION_LINES,
        CODEX_MTIME,
    )
    _write_lines(
        sessions_dir / f"{CODEX_LEGACY_ID}.jsonl", CODEX_LEGACY_LINES, CODEX_LEGACY_MTIME
    )
    return codex_dir


OPENCODE_SCHEMA = """
CREATE TABLE project (id TEXT PRIMARY KEY, worktree TEXT, name TEXT, time_created INTEGER);
CREATE TABLE session (
    id TEXT PRIMARY KEY, project_id TEXT, directory TEXT, title TEXT, slug TEXT,
    time_created INTEGER, time_updated INTEGER
);
CREATE TABLE message (id TEXT PRIMARY KEY, session_id TEXT, time_created INTEGER, data TEXT);
CREATE TABLE part (
    id TEXT PRIMARY KEY, message_id TEXT, session_id TEXT, time_created INTEGER, data TEXT
);
"""

OPENCODE_MESSAGES: list[tuple[str, int, str]] = [
    ("msg_1", OPENCODE_CREATED_MS, json.dumps({"role": "user"})),
    (
        "msg_2",
        OPENCODE_CREATED_MS + 1000,
        json.dumps(
            {
                "role": "assistant",
                "modelID": "claude-sonnet-4",
                "tokens": {"input": 10, "output": 20, "cache": {"read": 5, "write": 1}},
                "finish": "stop",
            }
        ),
    ),
    ("msg_3", OPENCODE_CREATED_MS + 2000, "{broken"),
    (
        "msg_4",
        OPENCODE_CREATED_MS + 3000,
        json.dumps({"role": "assistant", "modelID": "claude-sonnet-4"}),
    ),
]

OPENCODE_PARTS: list[tuple[str, str, dict[str, Any]]] = [
    ("prt_1", "msg_1", {"type": "text", "text": "Fix the login bug"}),
    ("prt_2", "msg_1", {"type": "text", "text": "hidden", "ignored": True}),
    ("prt_3", "msg_1", {"type": "file", "mime": "image/png", "url": "data:image/png;base64,AA"}),
    ("prt_4", "msg_2", {"type": "reasoning", "text": "Looking at auth"}),
    (
        "prt_5",
        "msg_2",
        {
            "type": "tool",
            "callID": "call_1",
            "tool": "read",
            "state": {"status": "completed", "input": {"path": "a.ts"}, "output": "contents"},
        },
    ),
    (
        "prt_6",
        "msg_2",
        {
            "type": "tool",
            "callID": "",
            "tool": "bash",
            "state": {"status": "running", "input": {"command": "npm test"}},
        },
    ),
    ("prt_7", "msg_2", {"type": "text", "text": "Found it."}),
    (
        "prt_8",
        "msg_4",
        {
            "type": "tool",
            "callID": "call_2",
            "tool": "edit",
            "state": {"status": "error", "input": {}, "error": "permission denied"},
        },
    ),
    ("prt_9", "msg_4", {"type": "step-finish", "tokens": {"input": 7, "output": 3}}),
]


def write_opencode_db(db_path: Path) -> Path:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    parts = OPENCODE_PARTS
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(OPENCODE_SCHEMA)
        conn.execute(
            "INSERT INTO project VALUES (?, ?, ?, ?)",
            ("proj_1", PROJECT_PATH, None, OPENCODE_CREATED_MS),
        )
        conn.execute(
            "INSERT INTO session VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                "ses_1",
                "proj_1",
                PROJECT_PATH,
                "",
                "brave-otter",
                OPENCODE_CREATED_MS,
                OPENCODE_UPDATED_MS,
            ),
        )
        conn.executemany(
            "INSERT INTO message VALUES (?, 'ses_1', ?, ?)", OPENCODE_MESSAGES
        )
        conn.executemany(
            "INSERT INTO part VALUES (?, ?, 'ses_1', 0, ?)",
            [(part_id, message_id, json.dumps(data)) for part_id, message_id, data in parts],
        )
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def opencode_dir(tmp_path: Path) -> Path:
    """An OpenCode data dir holding ``opencode.db``."""
    opencode_dir = tmp_path / "opencode"
    write_opencode_db(opencode_dir / "opencode.db")
    return opencode_dir


@pytest.fixture
def test_config(claude_dir: Path, codex_dir: Path, opencode_dir: Path) -> Config:
    """Config pointing at all three temporary data trees."""
    return Config(claude_dir=claude_dir, codex_dir=codex_dir, opencode_dir=opencode_dir)
