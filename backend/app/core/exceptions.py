"""
TenderDesk - Exception Hierarchy
Domain errors carry the HTTP status the API should answer with.
"""


class TenderDeskError(Exception):
    """Base exception for all TenderDesk errors."""

    status_code = 500

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class NotFoundError(TenderDeskError):
    """Raised when a referenced entity does not exist."""
    status_code = 404


class ValidationError(TenderDeskError):
    """Raised when input data is incomplete or inconsistent."""
    status_code = 400


class PermissionDeniedError(TenderDeskError):
    """Raised when the acting user's role may not perform an action."""
    status_code = 403


class InvalidTransitionError(TenderDeskError):
    """Raised when a state change is not in the transition table."""
    status_code = 409


class VersionConflictError(TenderDeskError):
    """Raised when an update carries a stale version token."""
    status_code = 409


class AIServiceError(TenderDeskError):
    """Raised when the generative AI backend fails or returns garbage."""
    status_code = 502
