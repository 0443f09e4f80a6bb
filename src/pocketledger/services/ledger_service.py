"""Ledger-specific helpers for filtering, ordering and pagination."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from ..models.transaction import Transaction

ALL = "all"


class DateRangePreset(str, Enum):
    ALL = "all"
    LAST_7_DAYS = "7_days"
    LAST_30_DAYS = "30_days"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class DateInterval:
    """Half-open ``[start, end)`` window; ``None`` bounds are open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True


@dataclass
class LedgerFilters:
    """Filters applied to ledger listings."""

    search_query: Optional[str] = None
    category: Optional[str] = ALL
    date_range: DateRangePreset = DateRangePreset.ALL
    txn_type: str = ALL  # income | expense | all
    account_id: Optional[str] = None


@dataclass
class Pagination:
    """Simple pagination parameters."""

    page: int = 1
    per_page: int = 25


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def _first_of_month(moment: datetime) -> datetime:
    return _start_of_day(moment).replace(day=1)


def resolve_date_range(preset: DateRangePreset | str, now: datetime) -> DateInterval:
    """Turn a preset into a concrete window anchored at ``now``.

    Rolling and month-to-date windows end at the start of the day after
    ``now`` so everything dated today is included.
    """

    preset = DateRangePreset(preset)
    now = _as_utc(now)
    end_of_today = _start_of_day(now) + timedelta(days=1)

    if preset is DateRangePreset.ALL:
        return DateInterval()
    if preset is DateRangePreset.LAST_7_DAYS:
        return DateInterval(now - timedelta(days=7), end_of_today)
    if preset is DateRangePreset.LAST_30_DAYS:
        return DateInterval(now - timedelta(days=30), end_of_today)
    if preset is DateRangePreset.THIS_MONTH:
        return DateInterval(_first_of_month(now), end_of_today)

    this_month = _first_of_month(now)
    previous = _first_of_month(this_month - timedelta(days=1))
    return DateInterval(previous, this_month)


def normalize_category_value(raw_value: Optional[str]) -> Optional[str]:
    """Return a category filter value, treating falsy/'all' as no filter."""

    if raw_value is None:
        return None
    stripped = raw_value.strip()
    if not stripped or stripped.lower() == ALL:
        return None
    return stripped


def matches_search(txn: Transaction, query: str) -> bool:
    """Case-insensitive substring match over the searchable text fields."""

    needle = query.casefold()
    for haystack in (txn.description, txn.merchant, txn.hash, txn.account_name):
        if haystack and needle in haystack.casefold():
            return True
    return False


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: LedgerFilters,
    *,
    now: Optional[datetime] = None,
) -> list[Transaction]:
    """Return the transactions that satisfy every active filter, in input order."""

    query = (filters.search_query or "").strip()
    category = normalize_category_value(filters.category)
    interval = resolve_date_range(filters.date_range, now or datetime.now(timezone.utc))
    txn_type = (filters.txn_type or ALL).lower()

    selected: list[Transaction] = []
    for txn in transactions:
        if query and not matches_search(txn, query):
            continue
        if category is not None and txn.category != category:
            continue
        if not interval.contains(txn.timestamp):
            continue
        if txn_type == "income" and not txn.is_inflow:
            continue
        if txn_type == "expense" and not txn.is_outflow:
            continue
        if filters.account_id is not None and txn.account_id != filters.account_id:
            continue
        selected.append(txn)
    return selected


def sort_transactions(
    transactions: Iterable[Transaction], order: SortOrder | str = SortOrder.DESC
) -> list[Transaction]:
    """Order by timestamp; ties keep their input order in both directions."""

    # sorted() stays stable with reverse=True.
    return sorted(
        transactions,
        key=lambda t: t.timestamp,
        reverse=SortOrder(order) is SortOrder.DESC,
    )


def paginate_transactions(
    txs: list[Transaction], pagination: Pagination
) -> tuple[list[Transaction], int]:
    """Return the current page of transactions and total count."""

    total = len(txs)
    page = max(1, pagination.page)
    per_page = max(1, pagination.per_page)
    start = (page - 1) * per_page
    end = start + per_page
    return txs[start:end], total
