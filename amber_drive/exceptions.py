"""
Amber Drive exceptions.

Every error the services raise maps to one distinct, user-visible outcome.
"""

from typing import Any


class AmberDriveError(Exception):
    """Base exception for the back-office services."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)


class ValidationError(AmberDriveError):
    """Raised when required input is missing or invalid."""

    status_code = 400
    code = "validation_error"


class Unauthorized(AmberDriveError):
    """Raised when the caller identity is missing or invalid."""

    status_code = 401
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized", **context: Any):
        super().__init__(message, **context)


class NotFoundError(AmberDriveError):
    """Raised when a car or quote does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Any):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found", resource=resource, resource_id=resource_id)


class ConflictError(AmberDriveError):
    """Raised when a write collides with a uniqueness rule."""

    status_code = 409
    code = "conflict"


class QuoteNumberCollision(ConflictError):
    """Raised when a generated quote number is already taken."""

    def __init__(self, quote_number: str):
        self.quote_number = quote_number
        super().__init__(f"Quote number {quote_number} already exists", quote_number=quote_number)


class UpstreamError(AmberDriveError):
    """Raised when the language-model API fails or returns an unusable body."""

    status_code = 502
    code = "upstream_error"
