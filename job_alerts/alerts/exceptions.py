"""Exceptions raised by alert management operations."""

from typing import List, Optional


class AlertServiceError(Exception):
    """Base exception for alert management errors."""

    pass


class AlertValidationError(AlertServiceError):
    """Raised when owner input is rejected (e.g. no keywords).

    Attributes:
        errors: One readable message per invalid field
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        super().__init__(message if not self.errors else f"{message}: {'; '.join(self.errors)}")


class AlertNotFoundError(AlertServiceError):
    """Raised when the requested alert does not exist."""

    pass


class AlertAccessDeniedError(AlertServiceError):
    """Raised when the caller is not a job seeker or does not own the alert."""

    pass
