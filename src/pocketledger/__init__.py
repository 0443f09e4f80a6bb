"""PocketLedger ledger aggregation and allocation engine."""

from __future__ import annotations

from .config import BaseConfig, DevConfig, TestingConfig
from .errors import InvalidStateError, LedgerError, ValidationError

__all__ = [
    "BaseConfig",
    "DevConfig",
    "InvalidStateError",
    "LedgerError",
    "TestingConfig",
    "ValidationError",
]

__version__ = "0.1.0"
