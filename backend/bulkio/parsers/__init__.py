"""
Streaming parsers for flat import files.

    from bulkio.parsers import parse_stream, ParsedRecord, ParseError

    with open(path, "rb") as f:
        for item in parse_stream(f, FileFormat.CSV):
            ...
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import BinaryIO

from bulkio.parsers.base import (
    DEFAULT_MAX_LINE_BYTES,
    ParsedItem,
    ParsedRecord,
    ParseError,
    RawRecord,
)
from bulkio.parsers.csv_parser import parse_csv
from bulkio.parsers.ndjson_parser import parse_ndjson
from bulkio.schemas.enums import FileFormat

__all__ = [
    "ParseError",
    "ParsedItem",
    "ParsedRecord",
    "RawRecord",
    "parse_csv",
    "parse_ndjson",
    "parse_stream",
]


def parse_stream(
    stream: BinaryIO,
    file_format: FileFormat | str,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> Iterator[ParsedItem]:
    """
    Select the parser for a format tag.

    Raises:
        ValueError: If the format is not supported
    """
    fmt = FileFormat(file_format)
    if fmt is FileFormat.CSV:
        return parse_csv(stream, max_line_bytes)
    return parse_ndjson(stream, max_line_bytes)
