"""Plan and implementation sessions that belong together.

When a plan is accepted, Claude Code starts a fresh session whose first
message begins with ``PLAN_PREFIX``; both sessions share a slug. Slug
equality is the only link available in the logs.
"""

from __future__ import annotations

from collections.abc import Sequence

from ach.models import SessionSummary, Turn, UserTurn
from ach.plugins.claude_code.commands import is_status_line

PLAN_PREFIX = "Implement the following plan"
UNKNOWN_SLUG = "unknown"


def is_implementation_turns(turns: Sequence[Turn]) -> bool:
    """True when the first non-status user turn starts with ``PLAN_PREFIX``."""
    first = next(
        (turn for turn in turns if isinstance(turn, UserTurn) and not is_status_line(turn.text)),
        None,
    )
    return first is not None and first.text.startswith(PLAN_PREFIX)


def find_plan_session_id(
    turns: Sequence[Turn],
    slug: str | None,
    sessions: Sequence[SessionSummary],
    current_session_id: str,
) -> str | None:
    if not slug or not is_implementation_turns(turns):
        return None
    for session in sessions:
        if session.slug == slug and session.session_id != current_session_id:
            return session.session_id
    return None


def find_impl_session_id(
    slug: str | None,
    sessions: Sequence[SessionSummary],
    current_session_id: str,
) -> str | None:
    if not slug:
        return None
    for session in sessions:
        if (
            session.slug == slug
            and session.session_id != current_session_id
            and session.first_message.startswith(PLAN_PREFIX)
        ):
            return session.session_id
    return None


def classify_session_types(sessions: list[SessionSummary]) -> list[SessionSummary]:
    """Tag implementation sessions, then the plan sessions sharing their slug.

    ``UNKNOWN_SLUG`` placeholders never link sessions together.
    """
    impl_slugs = {
        session.slug
        for session in sessions
        if session.first_message.startswith(PLAN_PREFIX) and session.slug != UNKNOWN_SLUG
    }
    classified: list[SessionSummary] = []
    for session in sessions:
        if session.first_message.startswith(PLAN_PREFIX):
            session = session.model_copy(update={"session_type": "implementation"})
        elif session.slug in impl_slugs:
            session = session.model_copy(update={"session_type": "plan"})
        classified.append(session)
    return classified

