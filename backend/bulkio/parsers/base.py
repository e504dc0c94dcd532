"""
Shared types and line reading for the streaming parsers.

Parsers yield a single fused sequence: every item is either a ParsedRecord
or a ParseError, in source order. Consumers handle both as they come, so
there is no second stream to drain.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, BinaryIO

__all__ = [
    "DEFAULT_MAX_LINE_BYTES",
    "ParseError",
    "ParsedItem",
    "ParsedRecord",
    "RawRecord",
    "read_lines",
]

DEFAULT_MAX_LINE_BYTES = 1024 * 1024

# Field name -> str (CSV) or any JSON value (NDJSON)
RawRecord = dict[str, Any]


@dataclass(frozen=True, slots=True)
class ParsedRecord:
    """A record read from the source and the row it came from."""

    row_number: int
    data: RawRecord


@dataclass(frozen=True, slots=True)
class ParseError:
    """
    A recoverable problem in the source.

    record_skipped is False for warnings that accompany a record which was
    still emitted (CSV field-count mismatches).
    """

    row_number: int
    message: str
    record_skipped: bool = True


ParsedItem = ParsedRecord | ParseError


def read_lines(
    stream: BinaryIO,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> Iterator[tuple[int, bytes | None]]:
    """
    Yield (line_number, raw_line) pairs, 1-based, line endings kept.

    A line longer than max_line_bytes is consumed up to its newline and
    yielded as None so the caller can report it.
    """
    line_number = 0
    while True:
        line = stream.readline(max_line_bytes + 1)
        if not line:
            return
        line_number += 1

        if len(line) > max_line_bytes and not line.endswith(b"\n"):
            # Discard the rest of the oversized line
            while True:
                rest = stream.readline(max_line_bytes + 1)
                if not rest or rest.endswith(b"\n"):
                    break
            yield line_number, None
            continue

        yield line_number, line


def decode_line(raw: bytes, first: bool) -> str:
    """Decode one UTF-8 line, dropping a byte-order mark on the first line."""
    return raw.decode("utf-8-sig" if first else "utf-8")
