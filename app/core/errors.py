"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients under ``error.details``."""

    operation: str
    namespace: str
    key_hash: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class ConflictAppError(AppError):
    """Raised when a write collides with an existing unique value."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class RateLimitStoreAppError(AppError):
    """Raised when the rate limit counter store cannot be reached."""
