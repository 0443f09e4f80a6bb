"""Dashboard analytics over canonical transactions and accounts."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable

from ..models.account import Account
from ..models.transaction import Transaction, TransactionStatus
from ..money import ZERO, quantize, total

UNCATEGORIZED = "general"
HUNDRED = Decimal("100")

_EXCLUDED_STATUSES = frozenset({TransactionStatus.FAILED, TransactionStatus.CANCELLED})


class SpendingTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(frozen=True)
class CategorySlice:
    name: str
    value: Decimal
    count: int
    percentage: Decimal


@dataclass(frozen=True)
class MonthlyTrend:
    month: str  # short label, e.g. "Jan"
    full_date: str  # YYYY-MM
    income: Decimal
    expenses: Decimal
    net: Decimal
    transaction_count: int


@dataclass(frozen=True)
class NetWorthTotals:
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO

    @property
    def total_net_worth(self) -> Decimal:
        return self.total_assets - self.total_liabilities


@dataclass(frozen=True)
class AnalyticsSnapshot:
    category_data: list[CategorySlice]
    monthly_trends: list[MonthlyTrend]
    spending_trend: SpendingTrend
    total_income: Decimal
    total_expense: Decimal
    transaction_count: int
    average_transaction: Decimal
    net_worth: NetWorthTotals = field(default_factory=NetWorthTotals)

    @property
    def net_amount(self) -> Decimal:
        return self.total_income - self.total_expense


def counted(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Drop transactions that never moved money (failed or cancelled)."""

    return [t for t in transactions if t.status not in _EXCLUDED_STATUSES]


def category_breakdown(transactions: Iterable[Transaction], *, limit: int = 6) -> list[CategorySlice]:
    """Group outflows by category and return the largest ``limit`` slices."""

    values: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for txn in transactions:
        if not txn.is_outflow:
            continue
        name = txn.category or UNCATEGORIZED
        values[name] = values.get(name, ZERO) + txn.amount
        counts[name] = counts.get(name, 0) + 1

    total_expense = total(values.values())
    slices = [
        CategorySlice(
            name=name,
            value=value,
            count=counts[name],
            percentage=quantize(value / total_expense * HUNDRED) if total_expense else ZERO,
        )
        for name, value in values.items()
    ]
    slices.sort(key=lambda s: (-s.value, s.name))
    return slices[:limit]


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def monthly_trends(
    transactions: Iterable[Transaction], now: datetime, *, months: int = 6
) -> list[MonthlyTrend]:
    """Trailing ``months`` buckets ending at ``now``'s month, oldest first.

    Months without activity are still reported with zero totals.
    """

    now = now.astimezone(timezone.utc) if now.tzinfo else now.replace(tzinfo=timezone.utc)
    keys = [_shift_month(now.year, now.month, -offset) for offset in range(months - 1, -1, -1)]
    income = {key: ZERO for key in keys}
    expenses = {key: ZERO for key in keys}
    counts = {key: 0 for key in keys}

    for txn in transactions:
        ts = txn.timestamp.astimezone(timezone.utc)
        key = (ts.year, ts.month)
        if key not in counts:
            continue
        counts[key] += 1
        if txn.is_inflow:
            income[key] += txn.amount
        elif txn.is_outflow:
            expenses[key] += txn.amount

    return [
        MonthlyTrend(
            month=calendar.month_abbr[month],
            full_date=f"{year:04d}-{month:02d}",
            income=income[(year, month)],
            expenses=expenses[(year, month)],
            net=income[(year, month)] - expenses[(year, month)],
            transaction_count=counts[(year, month)],
        )
        for year, month in keys
    ]


def spending_trend(trends: list[MonthlyTrend]) -> SpendingTrend:
    """Compare the two most recent months' expenses; equal means stable."""

    if len(trends) < 2:
        return SpendingTrend.STABLE
    current, previous = trends[-1].expenses, trends[-2].expenses
    if current > previous:
        return SpendingTrend.UP
    if current < previous:
        return SpendingTrend.DOWN
    return SpendingTrend.STABLE


def net_worth(accounts: Iterable[Account]) -> NetWorthTotals:
    """Sum active asset balances against active liability magnitudes."""

    assets = ZERO
    liabilities = ZERO
    for account in accounts:
        if not account.is_active:
            continue
        balance = Decimal(str(account.balance))
        if account.is_asset:
            assets += balance
        elif account.is_liability:
            liabilities += abs(balance)
    return NetWorthTotals(total_assets=assets, total_liabilities=liabilities)


def aggregate(
    transactions: Iterable[Transaction],
    now: datetime,
    accounts: Iterable[Account] = (),
    *,
    top_categories: int = 6,
    trend_months: int = 6,
) -> AnalyticsSnapshot:
    """Build the dashboard snapshot; pure given the inputs and ``now``."""

    txns = counted(transactions)
    income = total(t.amount for t in txns if t.is_inflow)
    expense = total(t.amount for t in txns if t.is_outflow)
    net = total(t.signed_amount for t in txns)
    average = quantize(abs(net) / len(txns)) if txns else ZERO
    trends = monthly_trends(txns, now, months=trend_months)

    return AnalyticsSnapshot(
        category_data=category_breakdown(txns, limit=top_categories),
        monthly_trends=trends,
        spending_trend=spending_trend(trends),
        total_income=income,
        total_expense=expense,
        transaction_count=len(txns),
        average_transaction=average,
        net_worth=net_worth(accounts),
    )
