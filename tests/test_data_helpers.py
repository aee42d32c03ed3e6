"""Tests for timestamp, JSONL and JSON value helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from result import Err, Ok

from ach.data.iso_time import (
    epoch_ms_to_iso,
    epoch_seconds_to_iso,
    format_iso,
    max_iso,
    sort_by_iso_desc,
)
from ach.data.jsonl import iter_jsonl_text, iter_records, read_jsonl, read_jsonl_head, read_text
from ach.data.values import as_int, json_type_name


class TestIsoTime:
    def test_format_iso_uses_millisecond_precision(self) -> None:
        dt = datetime(2026, 2, 22, 10, 0, 0, 123456, tzinfo=UTC)
        assert format_iso(dt) == "2026-02-22T10:00:00.123Z"

    def test_epoch_conversions(self) -> None:
        assert epoch_ms_to_iso(1771754400000) == "2026-02-22T10:00:00.000Z"
        assert epoch_seconds_to_iso(1771754400) == "2026-02-22T10:00:00.000Z"
        assert epoch_ms_to_iso(0) == "1970-01-01T00:00:00.000Z"

    def test_out_of_range_epoch_is_empty(self) -> None:
        assert epoch_ms_to_iso(10**18) == ""
        assert epoch_ms_to_iso(-(10**18)) == ""
        assert epoch_seconds_to_iso(float("inf")) == ""

    def test_max_iso(self) -> None:
        assert max_iso(["2026-02-20T00:00:00Z", "2026-02-22T10:00:00Z"]) == "2026-02-22T10:00:00Z"
        assert max_iso([]) == ""

    def test_sort_by_iso_desc_is_stable(self) -> None:
        items = [("a", "2026-01-01"), ("b", "2026-03-01"), ("c", "2026-01-01")]
        sorted_items = sort_by_iso_desc(items, lambda item: item[1])
        assert [name for name, _ in sorted_items] == ["b", "a", "c"]


class TestJsonl:
    def test_line_numbers_count_blank_lines(self) -> None:
        lines = list(iter_jsonl_text('{"a": 1}\n\n{"b": 2}\n'))
        assert [line.line_number for line in lines] == [1, 3]
        assert lines[1].parsed == Ok({"b": 2})

    def test_malformed_line_is_err(self) -> None:
        (line,) = iter_jsonl_text("{oops")
        assert isinstance(line.parsed, Err)
        assert line.raw == "{oops"

    def test_max_lines_bounds_physical_lines(self) -> None:
        lines = list(iter_jsonl_text('{"a": 1}\n\n{"b": 2}', max_lines=2))
        assert len(lines) == 1

    def test_iter_records_skips_non_objects(self) -> None:
        records = list(iter_records('[1, 2]\n{bad\n{"type": "x"}'))
        assert records == [(3, {"type": "x"})]

    def test_read_missing_file(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing.jsonl"
        assert read_text(missing) is None
        assert read_jsonl(missing) == []
        assert read_jsonl_head(missing, 5) == []

    def test_read_prefix(self, tmp_path: Path) -> None:
        path = tmp_path / "big.jsonl"
        path.write_text('{"a": 1}\n' * 100, encoding="utf-8")
        assert read_text(path, max_bytes=9) == '{"a": 1}\n'
        assert len(read_jsonl_head(path, 3)) == 3


class TestValues:
    def test_as_int(self) -> None:
        assert as_int(3) == 3
        assert as_int(2.9) == 2
        assert as_int("7") == 7
        assert as_int("nope") == 0
        assert as_int(None) == 0

    def test_as_int_out_of_range_is_zero(self) -> None:
        assert as_int(float("inf")) == 0
        assert as_int("1e400") == 0
        assert as_int(float("nan")) == 0

    def test_json_type_name(self) -> None:
        assert json_type_name(None) == "null"
        assert json_type_name(True) == "boolean"
        assert json_type_name(1.5) == "number"
        assert json_type_name("s") == "string"
        assert json_type_name([]) == "array"
        assert json_type_name({}) == "object"
