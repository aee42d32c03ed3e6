"""Tests for composite session ids."""

from __future__ import annotations

import pytest

from ach.data.session_id import ParsedSessionId, encode_session_id, parse_session_id


class TestSessionId:
    def test_encode(self) -> None:
        assert encode_session_id("claude-code", "abc123") == "claude-code::abc123"

    @pytest.mark.parametrize(
        ("plugin_id", "raw_id"),
        [
            ("claude-code", "abc123"),
            ("codex-cli", "0199a1b2-c3d4"),
            ("opencode", "nested::path::id"),
            ("opencode", ""),
        ],
    )
    def test_round_trip(self, plugin_id: str, raw_id: str) -> None:
        parsed = parse_session_id(encode_session_id(plugin_id, raw_id))
        assert parsed == ParsedSessionId(plugin_id=plugin_id, raw_session_id=raw_id)

    def test_splits_at_first_separator_only(self) -> None:
        parsed = parse_session_id("opencode::a::b")
        assert parsed.plugin_id == "opencode"
        assert parsed.raw_session_id == "a::b"

    def test_unencoded_id_passes_through(self) -> None:
        parsed = parse_session_id("legacy-session")
        assert parsed.plugin_id is None
        assert parsed.raw_session_id == "legacy-session"
