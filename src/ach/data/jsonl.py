"""Line-oriented JSON reading shared by the file-based adapters."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from itertools import islice
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonlLine:
    """One non-blank line of a JSONL file.

    ``line_number`` is 1-based and counts blank lines, so it always matches
    what an editor shows for the same file.
    """

    line_number: int
    raw: str
    parsed: Result[Any, str]


def decode_json(text: str) -> Result[Any, str]:
    try:
        return Ok(json.loads(text))
    except json.JSONDecodeError as exc:
        return Err(str(exc))


def iter_jsonl_text(text: str, *, max_lines: int | None = None) -> Iterator[JsonlLine]:
    """Yield decoded lines of ``text``, skipping blank ones.

    ``max_lines`` bounds the physical lines inspected, not the yielded ones.
    """
    for index, line in enumerate(text.split("\n")):
        if max_lines is not None and index >= max_lines:
            return
        if not line.strip():
            continue
        yield JsonlLine(line_number=index + 1, raw=line, parsed=decode_json(line))


def read_text(path: Path, *, max_bytes: int | None = None) -> str | None:
    """Read a UTF-8 file, or only its first ``max_bytes`` bytes.

    Returns ``None`` when the file cannot be read.
    """
    try:
        if max_bytes is None:
            return path.read_text(encoding="utf-8", errors="replace")
        with open(path, "rb") as file:
            data = file.read(max_bytes)
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None
    return data.decode("utf-8", errors="replace")


def read_jsonl(path: Path) -> list[JsonlLine]:
    text = read_text(path)
    if text is None:
        return []
    return list(iter_jsonl_text(text))


def read_jsonl_head(path: Path, max_lines: int) -> list[JsonlLine]:
    """Decode only the first ``max_lines`` physical lines of a file."""
    try:
        with open(path, encoding="utf-8", errors="replace") as file:
            head = [line.rstrip("\r\n") for line in islice(file, max_lines)]
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return []
    return list(iter_jsonl_text("\n".join(head)))


def iter_records(
    text: str, *, max_lines: int | None = None
) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield ``(line_number, record)`` for lines that decode to JSON objects.

    Used for metadata sniffing where malformed lines are skipped quietly.
    """
    for line in iter_jsonl_text(text, max_lines=max_lines):
        match line.parsed:
            case Ok(dict() as record):
                yield line.line_number, record
            case Ok(_):
                continue
            case Err(error):
                logger.debug("Skipping malformed line %d: %s", line.line_number, error)
