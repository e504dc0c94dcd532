"""
Streaming CSV parser.

The first row is the header. Data rows are mapped to header names: short
rows are padded with empty strings, long rows keep only the named columns.
Both cases are accepted and reported as non-fatal warnings.
"""

from __future__ import annotations

import csv
from collections import deque
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

__all__ = ["parse_csv"]


def parse_csv(
    stream: BinaryIO,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> Iterator[ParsedItem]:
    """
    Lazily parse a CSV byte stream.

    Row numbers are physical line numbers, so the first data row of a file
    with a one-line header is row 2. A quoted field spanning several lines
    reports the line on which the record ends.
    """
    # Fields may be as long as a whole line
    if csv.field_size_limit() < max_line_bytes:
        csv.field_size_limit(max_line_bytes)

    pending: deque[ParseError] = deque()
    position = {"line": 0}

    def text_lines() -> Iterator[str]:
        first = True
        for line_number, raw in read_lines(stream, max_line_bytes):
            position["line"] = line_number
            if raw is None:
                pending.append(
                    ParseError(line_number, f"line exceeds {max_line_bytes} bytes")
                )
                continue
            try:
                text = decode_line(raw, first)
            except UnicodeDecodeError as e:
                pending.append(ParseError(line_number, f"invalid UTF-8: {e.reason}"))
                continue
            finally:
                first = False
            yield text

    reader = csv.reader(text_lines())
    header: list[str] | None = None

    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            while pending:
                yield pending.popleft()
            yield ParseError(position["line"], f"malformed row: {e}")
            continue

        while pending:
            yield pending.popleft()

        if not row:
            continue

        if header is None:
            header = [name.strip() for name in row]
            continue

        row_number = position["line"]
        if len(row) != len(header):
            yield ParseError(
                row_number,
                f"expected {len(header)} fields, got {len(row)}",
                record_skipped=False,
            )

        record = {
            name: row[i] if i < len(row) else ""
            for i, name in enumerate(header)
        }
        yield ParsedRecord(row_number, record)

    while pending:
        yield pending.popleft()
