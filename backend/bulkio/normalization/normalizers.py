"""
Record normalization: raw validated records to canonical table rows.

Design notes:
- runs only on records that passed validation and the identifier gate
- canonical rows are plain dicts keyed by column name, ready for a Core
  insert; article rows carry an extra "tags" list that the upsert engine
  splits off into the tag tables
- one timestamp profile is accepted (RFC 3339 with a mandatory offset);
  anything else falls back to "now", or to null for published_at
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from bulkio.models.base import new_id, utc_now
from bulkio.schemas.enums import ArticleStatus, ResourceType
from bulkio.schemas.validation import ValidationOutcome
from bulkio.validation.rules import field_str

__all__ = [
    "CanonicalRecord",
    "check_identifier",
    "normalize_article",
    "normalize_comment",
    "normalize_user",
    "parse_tags",
    "parse_timestamp",
]

CanonicalRecord = dict[str, Any]

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$",
    re.IGNORECASE,
)


def parse_timestamp(value: str) -> datetime | None:
    """
    Parse an RFC 3339 timestamp and convert it to UTC.

    Returns None for blank or non-conforming input.
    """
    match = _RFC3339.match(value.strip())
    if match is None:
        return None

    date_part, time_part, fraction, offset = match.groups()
    micro = (fraction or "")[:6].ljust(6, "0")
    if offset.upper() == "Z":
        offset = "+00:00"

    try:
        parsed = datetime.fromisoformat(f"{date_part}T{time_part}.{micro}{offset}")
    except ValueError:
        # Well-formed but impossible, e.g. month 13
        return None
    return parsed.astimezone(UTC)


def parse_tags(value: Any) -> list[str]:
    """Turn a tag array or comma-separated string into a clean, ordered list."""
    if value is None:
        return []
    if isinstance(value, str):
        candidates = value.split(",")
    elif isinstance(value, list):
        candidates = [field_str({"tag": item}, "tag") for item in value]
    else:
        return []

    tags: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        tag = candidate.strip()
        if tag and tag not in seen:
            seen.add(tag)
            tags.append(tag)
    return tags


def check_identifier(
    resource_type: ResourceType,
    record: dict[str, Any],
    row_number: int,
) -> ValidationOutcome | None:
    """
    Reject records that cannot be given an identifier.

    Comments have no natural key, so their id must come from the source.
    Returns a failed outcome, or None when the record may proceed.
    """
    if resource_type is ResourceType.COMMENTS and not field_str(record, "id"):
        return ValidationOutcome.from_errors(
            row_number, [("id", "id is required for comments")]
        )
    return None


def _timestamp_or_now(record: dict[str, Any], name: str, now: datetime) -> datetime:
    return parse_timestamp(field_str(record, name)) or now


def normalize_user(record: dict[str, Any]) -> CanonicalRecord:
    now = utc_now()
    return {
        "id": field_str(record, "id") or new_id(),
        "email": field_str(record, "email").lower(),
        "name": field_str(record, "name"),
        "role": field_str(record, "role"),
        "active": field_str(record, "active").lower() == "true",
        "created_at": _timestamp_or_now(record, "created_at", now),
        "updated_at": _timestamp_or_now(record, "updated_at", now),
    }


def normalize_article(record: dict[str, Any]) -> CanonicalRecord:
    status = field_str(record, "status") or ArticleStatus.DRAFT.value
    published_at = None
    if status == ArticleStatus.PUBLISHED:
        published_at = parse_timestamp(field_str(record, "published_at"))

    return {
        "id": field_str(record, "id") or new_id(),
        "slug": field_str(record, "slug"),
        "title": field_str(record, "title"),
        "body": field_str(record, "body"),
        "author_id": field_str(record, "author_id"),
        "status": status,
        "published_at": published_at,
        "created_at": _timestamp_or_now(record, "created_at", utc_now()),
        "tags": parse_tags(record.get("tags")),
    }


def normalize_comment(record: dict[str, Any]) -> CanonicalRecord:
    return {
        "id": field_str(record, "id"),
        "article_id": field_str(record, "article_id"),
        "user_id": field_str(record, "user_id"),
        "body": field_str(record, "body"),
        "created_at": _timestamp_or_now(record, "created_at", utc_now()),
    }
