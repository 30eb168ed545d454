"""Typed failures raised by production stores."""
from __future__ import annotations


class PersistenceError(RuntimeError):
    """Raised when a store call fails."""

    kind = "unavailable"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(PersistenceError):
    kind = "not_found"


class StoreValidationError(PersistenceError):
    kind = "validation"


class ConflictError(PersistenceError):
    kind = "conflict"


__all__ = ["ConflictError", "NotFoundError", "PersistenceError", "StoreValidationError"]
