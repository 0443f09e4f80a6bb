"""Budget envelope table."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import ClassVar

from sqlmodel import Field, SQLModel


class EnvelopeType(str, Enum):
    SPENDING = "SPENDING"
    SAVINGS_GOAL = "SAVINGS_GOAL"
    SINKING_FUND = "SINKING_FUND"
    FLEXIBLE = "FLEXIBLE"


class Envelope(SQLModel, table=True):
    """A budget bucket; ``allocated_amount`` is the only field the engine writes."""

    __tablename__: ClassVar[str] = "envelope"

    id: str = Field(primary_key=True, max_length=64)
    name: str = Field(nullable=False, max_length=128)
    envelope_type: str = Field(default=EnvelopeType.SPENDING.value, max_length=32)
    group_name: str = Field(default="", max_length=64, index=True)
    allocated_amount: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=2)
    spent_amount: Decimal = Field(default=Decimal("0"), max_digits=18, decimal_places=2)
    currency: str = Field(default="USD", max_length=10)

    @property
    def available_balance(self) -> Decimal:
        # Negative means over budget.
        return self.allocated_amount - self.spent_amount
