"""
Storefront error taxonomy.

Every error raised by the services carries a machine-readable ``kind`` and
the HTTP status the API boundary renders it with (see the handler in
``app.main``). Services never convert these into success responses.
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for errors surfaced to API callers."""

    kind = "storefront_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(StorefrontError):
    """Malformed text, tier, quantity or cart. Not retryable."""

    kind = "validation_error"
    status_code = 400


class PlateUnavailable(StorefrontError):
    """The plate text is already reserved by another order."""

    kind = "plate_unavailable"
    status_code = 400

    def __init__(self, text: str):
        self.text = text
        super().__init__(
            f"Plate {text} is no longer available",
            details={"text": text},
        )


class InvalidStatusTransition(StorefrontError):
    """The requested status change is not an edge of the order lifecycle."""

    kind = "invalid_status_transition"
    status_code = 409

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move order from {current} to {requested}",
            details={"current_status": current, "requested_status": requested},
        )


class Forbidden(StorefrontError):
    """Caller does not own the resource or lacks operator capability."""

    kind = "forbidden"
    status_code = 403


class NotFound(StorefrontError):
    """Unknown order, plate or user id."""

    kind = "not_found"
    status_code = 404


class StorageUnavailable(StorefrontError):
    """Transient backend failure. The whole operation is safe to retry."""

    kind = "storage_unavailable"
    status_code = 503
