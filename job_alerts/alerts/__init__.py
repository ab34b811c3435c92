"""Alert management for job seekers."""

from .exceptions import (
    AlertAccessDeniedError,
    AlertNotFoundError,
    AlertServiceError,
    AlertValidationError,
)
from .service import AlertService

__all__ = [
    "AlertService",
    "AlertServiceError",
    "AlertValidationError",
    "AlertNotFoundError",
    "AlertAccessDeniedError",
]
