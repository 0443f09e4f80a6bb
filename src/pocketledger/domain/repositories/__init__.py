"""Repository protocol definitions for domain layer."""

from .account import AccountRepository
from .envelope import EnvelopeRepository

__all__ = [
    "AccountRepository",
    "EnvelopeRepository",
]
