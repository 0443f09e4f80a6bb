"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .envelope import SQLModelEnvelopeRepository

__all__ = [
    "SQLModelAccountRepository",
    "SQLModelEnvelopeRepository",
]
