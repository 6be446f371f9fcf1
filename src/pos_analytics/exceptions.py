"""Domain-specific exceptions for POS Analytics.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from PosAnalyticsError for easy catching.
"""

from __future__ import annotations

from datetime import date


class PosAnalyticsError(Exception):
    """Base exception for all POS Analytics errors.

    This is the base class for all domain-specific exceptions in the package.
    Users can catch this exception to handle any POS Analytics error.
    """

    pass


class ConfigError(PosAnalyticsError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid configuration values are provided
    - Required configuration is missing (e.g. an API key for extraction)
    """

    pass


class ValidationError(PosAnalyticsError):
    """Raised when input is rejected before anything is written.

    This exception is raised when:
    - A required field (business date, reported total, line items) is missing
    - A quantity, amount or timestamp cannot be parsed
    - A requested date window is malformed or extends past today
    """

    pass


class DataQualityError(PosAnalyticsError):
    """Raised when a DataFrame handed to an aggregation lacks required columns."""

    pass


class ExtractionFormatError(PosAnalyticsError):
    """Raised when an extraction response holds no recoverable JSON payload.

    The raw model output is kept on ``raw_text`` so an operator can re-enter
    the data by hand instead of losing the upload.
    """

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class ConflictError(PosAnalyticsError):
    """Raised when an audited upload targets a date that already has a record.

    Orders and transaction-history splits are never overwritten silently; the
    existing record has to be deleted explicitly before re-inserting.
    """

    def __init__(self, business_date: date, record_type: str = "Receipt") -> None:
        super().__init__(
            f"{record_type} for {business_date.isoformat()} already exists. "
            f"Delete the existing one first."
        )
        self.business_date = business_date
        self.record_type = record_type


class PartialWriteFailure(PosAnalyticsError):
    """Raised when line items failed after the order header was written.

    When this exception is raised directly, the header has already been
    removed again and no partial state survives.
    """

    def __init__(self, message: str, business_date: date) -> None:
        super().__init__(message)
        self.business_date = business_date


class OrphanedRecordError(PartialWriteFailure):
    """Raised when the compensating delete of an order header also failed.

    The store now holds an order header without line items. This is a fatal
    inconsistency that needs manual cleanup of ``order_id``.
    """

    def __init__(self, message: str, business_date: date, order_id: int) -> None:
        super().__init__(message, business_date)
        self.order_id = order_id


class ExternalServiceError(PosAnalyticsError):
    """Raised when the vision or assistant endpoint fails.

    This exception is raised when:
    - The HTTP request fails or times out
    - The endpoint returns a non-2xx status
    - The response envelope does not have the expected shape

    These failures are retryable by the caller; nothing retries automatically.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = True


class ToolNotAllowedError(PosAnalyticsError):
    """Raised when the assistant requests a tool outside the read-only set."""

    pass
