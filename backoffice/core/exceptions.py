"""
Typed exceptions for the back-office domain.

Every error carries a machine-readable ``code``, a human-readable
``message`` and the HTTP status the API renders it with:

    BackOfficeError
    +-- ValidationError            VALIDATION_ERROR       400
    +-- PersistenceError           PERSISTENCE_ERROR      500
    |   +-- InvoiceNumberError     INVOICE_NUMBER_ERROR   503
    +-- PartialApplicationError    PARTIAL_APPLICATION    500
    +-- NotificationError          NOTIFICATION_ERROR     502

Validation errors are raised before any write. Notification errors never
escape invoice creation; they are reported as warnings.
"""

from typing import Any


class BackOfficeError(Exception):
    """Base class for all domain errors."""

    code: str = "BACKOFFICE_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(BackOfficeError):
    """Caller-supplied data is invalid (amount, balance, missing selection)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class PersistenceError(BackOfficeError):
    """A read or write failed at the storage boundary."""

    code = "PERSISTENCE_ERROR"
    status_code = 500


class InvoiceNumberError(PersistenceError):
    """The invoice number sequence could not be advanced after retries."""

    code = "INVOICE_NUMBER_ERROR"
    status_code = 503

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to generate invoice number after {attempts} attempts. Please try again."
        )


class PartialApplicationError(BackOfficeError):
    """
    A non-atomic payment distribution stopped partway.

    Allocations to ``applied_invoice_ids`` are committed; ``failed_invoice_id``
    and ``pending_invoice_ids`` received nothing.
    """

    code = "PARTIAL_APPLICATION"
    status_code = 500

    def __init__(
        self,
        message: str,
        applied_invoice_ids: list[int],
        failed_invoice_id: int,
        pending_invoice_ids: list[int],
    ):
        self.applied_invoice_ids = applied_invoice_ids
        self.failed_invoice_id = failed_invoice_id
        self.pending_invoice_ids = pending_invoice_ids
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "applied_invoice_ids": self.applied_invoice_ids,
            "failed_invoice_id": self.failed_invoice_id,
            "pending_invoice_ids": self.pending_invoice_ids,
        })
        return data


class NotificationError(BackOfficeError):
    """The invoice email could not be dispatched."""

    code = "NOTIFICATION_ERROR"
    status_code = 502
