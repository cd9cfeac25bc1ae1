"""
Structured failures raised by the repositories.

The driver exception is classified once, here at the store boundary, into a
StoreErrorKind; callers branch on the kind, never on driver messages or
error codes.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class StoreErrorKind(str, Enum):
    UNIQUE_VIOLATION = "unique_violation"
    NOT_FOUND = "not_found"
    CONNECTION = "connection_error"
    UNKNOWN = "unknown"


class StoreError(Exception):
    """A repository operation failed; ``kind`` says how."""

    def __init__(
        self,
        kind: StoreErrorKind,
        message: str,
        *,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.operation = operation

    @classmethod
    def not_found(cls, message: str, *, operation: Optional[str] = None) -> "StoreError":
        return cls(StoreErrorKind.NOT_FOUND, message, operation=operation)
