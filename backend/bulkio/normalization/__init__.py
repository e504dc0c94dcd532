"""Identifier gate and default-filling for validated records."""

from bulkio.normalization.normalizers import (
    CanonicalRecord,
    check_identifier,
    normalize_article,
    normalize_comment,
    normalize_user,
    parse_tags,
    parse_timestamp,
)

__all__ = [
    "CanonicalRecord",
    "check_identifier",
    "normalize_article",
    "normalize_comment",
    "normalize_user",
    "parse_tags",
    "parse_timestamp",
]
