"""
Field-level checks shared by the record validators.

All helpers are pure and operate on already-trimmed strings.
"""

from __future__ import annotations

import json
import re
from typing import Any

__all__ = [
    "BODY_WORD_CHECK_THRESHOLD",
    "MAX_COMMENT_WORDS",
    "count_words",
    "field_str",
    "is_kebab_case",
    "is_valid_email",
]

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
KEBAB_CASE_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

# A body of this many characters or fewer cannot exceed the word limit
BODY_WORD_CHECK_THRESHOLD = 1000
MAX_COMMENT_WORDS = 500


def field_str(record: dict[str, Any], name: str) -> str:
    """
    Read a field as a trimmed string regardless of its source type.

    None and missing fields give "", booleans give "true"/"false", arrays
    and objects give compact JSON.
    """
    value = record.get(name)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value).strip()


def is_valid_email(value: str) -> bool:
    """Check the local@domain.tld shape."""
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_kebab_case(value: str) -> bool:
    """Check lowercase alphanumeric words joined by single hyphens."""
    return bool(value) and KEBAB_CASE_PATTERN.match(value) is not None


def count_words(value: str) -> int:
    """Count whitespace-separated words."""
    return len(value.split())
