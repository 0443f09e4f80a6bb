"""Canonical ledger transaction shared by every provider."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..errors import ValidationError


class Direction(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    NEUTRAL = "neutral"


class TransactionType(str, Enum):
    """Movement kinds; the type alone decides the sign of a transaction."""

    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    PAYMENT = "PAYMENT"
    FEE = "FEE"
    INTEREST = "INTEREST"
    REFUND = "REFUND"
    SEND = "SEND"
    RECEIVE = "RECEIVE"
    SWAP = "SWAP"
    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"
    OTHER = "OTHER"

    @property
    def direction(self) -> Direction:
        return _DIRECTIONS[self]


_DIRECTIONS = {
    TransactionType.DEPOSIT: Direction.INFLOW,
    TransactionType.INTEREST: Direction.INFLOW,
    TransactionType.REFUND: Direction.INFLOW,
    TransactionType.RECEIVE: Direction.INFLOW,
    TransactionType.UNSTAKE: Direction.INFLOW,
    TransactionType.WITHDRAWAL: Direction.OUTFLOW,
    TransactionType.PAYMENT: Direction.OUTFLOW,
    TransactionType.FEE: Direction.OUTFLOW,
    TransactionType.SEND: Direction.OUTFLOW,
    TransactionType.STAKE: Direction.OUTFLOW,
    TransactionType.TRANSFER: Direction.NEUTRAL,
    TransactionType.SWAP: Direction.NEUTRAL,
    TransactionType.OTHER: Direction.NEUTRAL,
}


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    POSTED = "POSTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class TransactionSource(str, Enum):
    MANUAL = "manual"
    BANK = "bank"
    CRYPTO = "crypto"


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single normalized movement of money.

    ``amount`` is a non-negative magnitude; ``type`` carries the direction.
    Instances are immutable so the same raw record always compares equal to
    its previous normalization.
    """

    id: str
    type: TransactionType
    status: TransactionStatus
    timestamp: datetime
    amount: Decimal
    currency: str
    description: str
    source: TransactionSource
    category: Optional[str] = None
    merchant: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    running_balance: Optional[Decimal] = None
    hash: Optional[str] = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValidationError(
                "Transaction amount must be a non-negative magnitude",
                field="amount",
                record_id=self.id,
            )

    @property
    def pending(self) -> bool:
        return self.status is TransactionStatus.PENDING

    @property
    def direction(self) -> Direction:
        return self.type.direction

    @property
    def is_inflow(self) -> bool:
        return self.direction is Direction.INFLOW

    @property
    def is_outflow(self) -> bool:
        return self.direction is Direction.OUTFLOW

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by ``type`` (zero for neutral moves)."""
        if self.is_inflow:
            return self.amount
        if self.is_outflow:
            return -self.amount
        return Decimal("0")
