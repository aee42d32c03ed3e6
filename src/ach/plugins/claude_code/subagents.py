"""Link ``Task`` tool calls to the sub-agent transcripts they spawned.

Two independent signals name a call's agent:

- ``progress`` records of type ``agent_progress`` carry ``parentToolUseID``
  and ``data.agentId`` (foreground agents);
- the tool result text contains ``agentId: <id>`` (background agents).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ach.data.values import as_dict, as_str

AGENT_ID_RE = re.compile(r"agentId:\s*(\w+)")


def extract_sub_agent_map(records: Iterable[dict[str, Any]]) -> dict[str, str]:
    """Map tool use ids to the sub-agent ids they spawned."""
    agents: dict[str, str] = {}
    for record in records:
        match record.get("type"):
            case "progress":
                data = as_dict(record.get("data"))
                parent_id = as_str(record.get("parentToolUseID"))
                agent_id = as_str(data.get("agentId"))
                if parent_id and data.get("type") == "agent_progress" and agent_id:
                    agents[parent_id] = agent_id
            case "user":
                content = as_dict(record.get("message")).get("content")
                if not isinstance(content, list):
                    continue
                for block in content:
                    block = as_dict(block)
                    if block.get("type") != "tool_result":
                        continue
                    found = AGENT_ID_RE.search(_tool_result_text(block.get("content")))
                    tool_use_id = as_str(block.get("tool_use_id"))
                    if found and tool_use_id:
                        agents[tool_use_id] = found.group(1)
    return agents


def sub_agent_path(projects_dir: Path, project: str, session_id: str, agent_id: str) -> Path:
    return projects_dir / project / session_id / "subagents" / f"agent-{agent_id}.jsonl"


def _tool_result_text(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            as_str(part.get("text"))
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""
