"""Pure, database-free record validation."""

from bulkio.validation.validators import (
    validate_article,
    validate_comment,
    validate_user,
)

__all__ = [
    "validate_article",
    "validate_comment",
    "validate_user",
]
