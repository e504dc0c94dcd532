"""
Per-record validation results.

A ValidationOutcome is produced once per rejected (or reconciled-away)
record and is stored, serialized, in the owning job's error list.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "FieldError",
    "ValidationOutcome",
]


class FieldError(BaseModel):
    """A single field-level problem."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(description="Offending field name, or 'job' for fatal errors")
    message: str = Field(description="Human-readable explanation")


class ValidationOutcome(BaseModel):
    """Verdict for one source record."""

    model_config = ConfigDict(frozen=True)

    row_number: int = Field(
        description="1-based source row; CSV rows count the header, 0 means no source row",
    )
    record_id: str | None = Field(default=None, description="Identifier given in the record")
    valid: bool = Field(description="Whether the record passed")
    errors: tuple[FieldError, ...] = Field(default=(), description="Field-level errors in check order")

    @classmethod
    def from_errors(
        cls,
        row_number: int,
        errors: list[tuple[str, str]],
        record_id: str | None = None,
    ) -> ValidationOutcome:
        """Build an outcome from collected (field, message) pairs."""
        return cls(
            row_number=row_number,
            record_id=record_id or None,
            valid=not errors,
            errors=tuple(FieldError(field=f, message=m) for f, m in errors),
        )

    def to_record(self) -> dict:
        """Serialize for the job's JSON error column."""
        return self.model_dump(mode="json", exclude_none=True)
