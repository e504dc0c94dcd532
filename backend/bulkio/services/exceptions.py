"""
Domain exceptions for the service layer.

Request-path exceptions are raised by services and caught by API routes
to convert into appropriate HTTP responses. FatalJobError and its
subclasses end a running job: the pipeline marks the job failed and
records the message as the job's synthetic error.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """Entity not found."""

    def __init__(self, entity: str, identifier: str | None = None):
        self.entity = entity
        self.identifier = identifier
        message = f"{entity} not found"
        if identifier:
            message = f"{entity} with identifier '{identifier}' not found"
        super().__init__(message)


class ConflictError(ServiceError):
    """Entity is in a state that prevents the operation."""

    def __init__(self, entity: str, field: str, value: str):
        self.entity = entity
        self.field = field
        self.value = value
        message = f"{entity} with {field} '{value}' conflicts with the request"
        super().__init__(message)


class ValidationError(ServiceError):
    """Validation error in service layer."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidStateTransitionError(ServiceError):
    """Invalid status/state transition."""

    def __init__(self, entity: str, current_state: str, target_state: str):
        self.entity = entity
        self.current_state = current_state
        self.target_state = target_state
        message = f"Cannot transition {entity} from '{current_state}' to '{target_state}'"
        super().__init__(message)


class FatalJobError(ServiceError):
    """A job cannot continue; already-committed batches stay committed."""


class SourceUnreadableError(FatalJobError):
    """The import source could not be opened, downloaded or decoded."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"source unreadable: {reason}")


class UnknownResourceError(FatalJobError):
    """The resource kind has no registered descriptor."""

    def __init__(self, resource_type: str):
        self.resource_type = resource_type
        super().__init__(f"unknown resource type '{resource_type}'")


class BatchWriteError(FatalJobError):
    """A batch upsert failed and was rolled back."""

    def __init__(self, first_row: int, last_row: int):
        self.first_row = first_row
        self.last_row = last_row
        super().__init__(f"batch write failed for rows {first_row}-{last_row}")
