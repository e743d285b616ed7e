"""
Error taxonomy for the registration core.

Expected conditions (bad search key, unknown group, approving a record that was
already reviewed) are reported as an Outcome with an ErrorKind so callers always
get either a value or a named failure. Backend failures are raised as
StoreUnavailableError and must be translated by the caller into a retry prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


class ErrorKind:
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate registration)."""


class StoreUnavailableError(Exception):
    """The database could not serve a read or write; the whole operation failed."""


class NotificationError(Exception):
    """Email dispatch failed. Logged by callers, never surfaced from approve()."""


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Discriminated result: either ok=True with a value, or ok=False with an
    error kind and a user-facing message.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    message: str = ""

    @classmethod
    def success(cls, value: T, message: str = "") -> "Outcome[T]":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, error: str, message: str) -> "Outcome[Any]":
        return cls(ok=False, error=error, message=message)

    @property
    def is_validation_error(self) -> bool:
        return self.error == ErrorKind.VALIDATION

    @property
    def is_not_found(self) -> bool:
        return self.error == ErrorKind.NOT_FOUND

    @property
    def is_invalid_transition(self) -> bool:
        return self.error == ErrorKind.INVALID_TRANSITION


# HTTP status for each failure kind; used by routes.
ERROR_HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
}
