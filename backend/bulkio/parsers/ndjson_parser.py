"""Streaming newline-delimited JSON parser."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import BinaryIO

from bulkio.parsers.base import (
    DEFAULT_MAX_LINE_BYTES,
    ParsedItem,
    ParsedRecord,
    ParseError,
    decode_line,
    read_lines,
)

__all__ = ["parse_ndjson"]


def parse_ndjson(
    stream: BinaryIO,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> Iterator[ParsedItem]:
    """
    Lazily parse an NDJSON byte stream, one object per line.

    Row numbers are physical line numbers; blank lines are skipped but
    still counted.
    """
    for line_number, raw in read_lines(stream, max_line_bytes):
        if raw is None:
            yield ParseError(line_number, f"line exceeds {max_line_bytes} bytes")
            continue

        try:
            text = decode_line(raw, line_number == 1).strip()
        except UnicodeDecodeError as e:
            yield ParseError(line_number, f"invalid UTF-8: {e.reason}")
            continue

        if not text:
            continue

        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            yield ParseError(line_number, f"invalid JSON: {e.msg}")
            continue

        if not isinstance(value, dict):
            yield ParseError(
                line_number, f"expected a JSON object, got {type(value).__name__}"
            )
            continue

        yield ParsedRecord(line_number, value)
