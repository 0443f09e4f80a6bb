"""Exception types raised by the ledger engine."""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for engine errors."""


class ValidationError(LedgerError, ValueError):
    """A raw record or input value could not be accepted.

    ``field`` names the offending attribute and ``record_id`` the source record
    when known, so callers can report dropped rows without parsing messages.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.record_id = record_id

    def __str__(self) -> str:
        if self.record_id:
            return f"{self.message} (record {self.record_id})"
        return self.message


class InvalidStateError(LedgerError):
    """Operation requested on an empty or otherwise illegal collection."""
