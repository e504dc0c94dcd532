"""
Per-kind record validators.

Each validator checks one raw record in isolation and collects every
violation; nothing here touches the database. Whether referenced users
and articles exist is settled after the import by the orphan reconciler.
"""

from __future__ import annotations

from typing import Any

from bulkio.schemas.enums import ArticleStatus
from bulkio.schemas.validation import ValidationOutcome
from bulkio.validation.rules import (
    BODY_WORD_CHECK_THRESHOLD,
    MAX_COMMENT_WORDS,
    count_words,
    field_str,
    is_kebab_case,
    is_valid_email,
)

__all__ = [
    "validate_article",
    "validate_comment",
    "validate_user",
]

_ARTICLE_STATUSES = [s.value for s in ArticleStatus]


def validate_user(record: dict[str, Any], row_number: int) -> ValidationOutcome:
    """Check a user record: email shape, non-blank role, explicit active flag."""
    errors: list[tuple[str, str]] = []

    email = field_str(record, "email")
    if not email:
        errors.append(("email", "Email is required"))
    elif not is_valid_email(email):
        errors.append(("email", "Invalid email format"))

    if not field_str(record, "role"):
        errors.append(("role", "Role is required"))

    active = field_str(record, "active").lower()
    if active not in ("true", "false"):
        errors.append(("active", "Active must be 'true' or 'false'"))

    return ValidationOutcome.from_errors(row_number, errors, field_str(record, "id"))


def validate_article(record: dict[str, Any], row_number: int) -> ValidationOutcome:
    """Check an article record: slug shape, author reference, draft rules, tags type."""
    errors: list[tuple[str, str]] = []

    slug = field_str(record, "slug")
    if not slug:
        errors.append(("slug", "Slug is required"))
    elif not is_kebab_case(slug):
        errors.append(
            ("slug", "Slug must be in kebab-case format (lowercase, hyphen-separated)")
        )

    if not field_str(record, "author_id"):
        errors.append(("author_id", "Author ID is required"))

    status = field_str(record, "status")
    if status and status not in _ARTICLE_STATUSES:
        errors.append(("status", f"status must be one of: {', '.join(_ARTICLE_STATUSES)}"))

    # Blank status is normalized to draft, so it gets the draft rule too
    if status in ("", ArticleStatus.DRAFT) and field_str(record, "published_at"):
        errors.append(
            ("published_at", "Draft articles must not have published_at timestamp")
        )

    tags = record.get("tags")
    if tags is not None and not isinstance(tags, (str, list)):
        errors.append(("tags", f"Tags must be array or string, got {type(tags).__name__}"))
    elif isinstance(tags, list) and any("," in str(tag) for tag in tags):
        # CSV exports join tags with commas
        errors.append(("tags", "Tag names must not contain commas"))

    return ValidationOutcome.from_errors(row_number, errors, field_str(record, "id"))


def validate_comment(record: dict[str, Any], row_number: int) -> ValidationOutcome:
    """Check a comment record: both references present, body within the word cap."""
    errors: list[tuple[str, str]] = []

    if not field_str(record, "article_id"):
        errors.append(("article_id", "Article ID is required"))
    if not field_str(record, "user_id"):
        errors.append(("user_id", "User ID is required"))

    body = field_str(record, "body")
    if len(body) > BODY_WORD_CHECK_THRESHOLD:
        words = count_words(body)
        if words > MAX_COMMENT_WORDS:
            errors.append(
                ("body", f"Body exceeds {MAX_COMMENT_WORDS} words limit (has {words} words)")
            )

    return ValidationOutcome.from_errors(row_number, errors, field_str(record, "id"))
