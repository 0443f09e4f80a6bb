"""Domain model exports."""

from .account import Account, AccountCategory, AccountSource
from .envelope import Envelope, EnvelopeType
from .operation import BatchResult, OperationItem, OperationKind, OperationStatus
from .sync import SyncEvent, SyncKind, SyncState, SyncStatus
from .transaction import (
    Direction,
    Transaction,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "Account",
    "AccountCategory",
    "AccountSource",
    "BatchResult",
    "Direction",
    "Envelope",
    "EnvelopeType",
    "OperationItem",
    "OperationKind",
    "OperationStatus",
    "SyncEvent",
    "SyncKind",
    "SyncState",
    "SyncStatus",
    "Transaction",
    "TransactionSource",
    "TransactionStatus",
    "TransactionType",
]
