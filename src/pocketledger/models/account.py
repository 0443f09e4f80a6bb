"""Account model covering bank, crypto and manual holdings."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import ClassVar

from sqlmodel import Field, SQLModel


class AccountCategory(str, Enum):
    # Assets
    ASSETS = "ASSETS"
    CASH = "CASH"
    INVESTMENTS = "INVESTMENTS"
    REAL_ESTATE = "REAL_ESTATE"
    VEHICLE = "VEHICLE"
    VALUABLES = "VALUABLES"
    CRYPTO = "CRYPTO"
    OTHER_ASSET = "OTHER_ASSET"

    # Liabilities
    LIABILITIES = "LIABILITIES"
    CREDIT_CARD = "CREDIT_CARD"
    MORTGAGE = "MORTGAGE"
    LOAN = "LOAN"
    OTHER_LIABILITY = "OTHER_LIABILITY"

    # Legacy
    CREDIT = "CREDIT"
    OTHER = "OTHER"


ASSET_CATEGORIES = frozenset(
    {
        AccountCategory.ASSETS,
        AccountCategory.CASH,
        AccountCategory.INVESTMENTS,
        AccountCategory.REAL_ESTATE,
        AccountCategory.VEHICLE,
        AccountCategory.VALUABLES,
        AccountCategory.CRYPTO,
        AccountCategory.OTHER_ASSET,
    }
)

LIABILITY_CATEGORIES = frozenset(
    {
        AccountCategory.LIABILITIES,
        AccountCategory.CREDIT_CARD,
        AccountCategory.MORTGAGE,
        AccountCategory.LOAN,
        AccountCategory.OTHER_LIABILITY,
        AccountCategory.CREDIT,
    }
)


class AccountSource(str, Enum):
    MANUAL = "manual"
    PROVIDER = "provider"


class Account(SQLModel, table=True):
    """A user-owned balance holder: bank account, wallet or manual asset."""

    __tablename__: ClassVar[str] = "account"

    id: str = Field(primary_key=True, max_length=64)
    name: str = Field(nullable=False, max_length=128)
    category: str = Field(default=AccountCategory.CASH.value, max_length=32, index=True)
    balance: Decimal = Field(default=Decimal("0"), max_digits=28, decimal_places=8)
    currency: str = Field(default="USD", max_length=10)
    source: str = Field(default=AccountSource.MANUAL.value, max_length=16)
    is_active: bool = Field(default=True, nullable=False)

    @property
    def is_asset(self) -> bool:
        return self.category in ASSET_CATEGORIES

    @property
    def is_liability(self) -> bool:
        return self.category in LIABILITY_CATEGORIES
