"""Analytics aggregation tests."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from pocketledger.models import AccountCategory, TransactionStatus, TransactionType
from pocketledger.services.analytics import (
    UNCATEGORIZED,
    SpendingTrend,
    aggregate,
    category_breakdown,
    monthly_trends,
    net_worth,
)
from pocketledger.services.normalizer import ManualTransactionRecord, normalize_many


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_groceries_scenario(now):
    records = [
        ManualTransactionRecord(id="1", amount=-50, timestamp=now, category="groceries"),
        ManualTransactionRecord(id="2", amount=-30, timestamp=now, category="groceries"),
        ManualTransactionRecord(id="3", amount=200, timestamp=now, category=None),
    ]
    txns = normalize_many(records).transactions

    snapshot = aggregate(txns, now)

    assert len(snapshot.category_data) == 1
    groceries = snapshot.category_data[0]
    assert groceries.name == "groceries"
    assert groceries.value == Decimal("80")
    assert groceries.count == 2
    assert groceries.percentage == Decimal("100.00")
    assert snapshot.net_amount == Decimal("120")
    assert snapshot.total_income == Decimal("200")
    assert snapshot.total_expense == Decimal("80")
    assert snapshot.transaction_count == 3
    assert snapshot.average_transaction == Decimal("40.00")


def test_average_uses_signed_net(txn_factory, now):
    balanced = [
        txn_factory("100", TransactionType.DEPOSIT),
        txn_factory("100", TransactionType.WITHDRAWAL),
    ]
    spending = [
        txn_factory("30", TransactionType.WITHDRAWAL),
        txn_factory("10", TransactionType.WITHDRAWAL),
        txn_factory("20", TransactionType.DEPOSIT),
    ]

    assert aggregate(balanced, now).average_transaction == Decimal("0")
    assert aggregate(spending, now).average_transaction == Decimal("6.67")


def test_category_breakdown_limits_and_orders(txn_factory):
    txns = [
        txn_factory("10", category=name)
        for name in ("a", "b", "c", "d", "e", "f", "g")
    ] + [txn_factory("50", category="big"), txn_factory("5", category=None)]

    slices = category_breakdown(txns, limit=6)

    assert len(slices) == 6
    assert slices[0].name == "big"
    # Equal values fall back to name order.
    assert [s.name for s in slices[1:]] == ["a", "b", "c", "d", "e"]


def test_uncategorized_outflows_grouped_as_general(txn_factory):
    slices = category_breakdown([txn_factory("12.5"), txn_factory("7.5")])

    assert slices[0].name == UNCATEGORIZED
    assert slices[0].value == Decimal("20.0")
    assert slices[0].percentage == Decimal("100.00")


def test_failed_and_cancelled_are_excluded(txn_factory, now):
    txns = [
        txn_factory("10", category="food"),
        txn_factory("999", category="food", status=TransactionStatus.FAILED),
        txn_factory("999", category="food", status=TransactionStatus.CANCELLED),
        txn_factory("3", category="food", status=TransactionStatus.PENDING),
    ]

    snapshot = aggregate(txns, now)

    assert snapshot.total_expense == Decimal("13")
    assert snapshot.transaction_count == 2


def test_monthly_trends_fill_empty_months(txn_factory, now):
    txns = [
        txn_factory("100", TransactionType.DEPOSIT, timestamp=_utc(2024, 3, 2)),
        txn_factory("40", timestamp=_utc(2024, 3, 3)),
        txn_factory("60", timestamp=_utc(2024, 1, 20)),
        txn_factory("500", timestamp=_utc(2023, 6, 1)),  # outside the window
    ]

    trends = monthly_trends(txns, now, months=6)

    assert [t.full_date for t in trends] == [
        "2023-10",
        "2023-11",
        "2023-12",
        "2024-01",
        "2024-02",
        "2024-03",
    ]
    assert trends[-1].month == "Mar"
    assert trends[-1].income == Decimal("100")
    assert trends[-1].expenses == Decimal("40")
    assert trends[-1].net == Decimal("60")
    assert trends[-1].transaction_count == 2
    assert trends[-2].transaction_count == 0
    assert trends[3].expenses == Decimal("60")


def test_spending_trend_directions(txn_factory, now):
    feb = _utc(2024, 2, 10)
    up = aggregate([txn_factory("10", timestamp=feb), txn_factory("20")], now)
    down = aggregate([txn_factory("30", timestamp=feb), txn_factory("20")], now)
    flat = aggregate([txn_factory("20", timestamp=feb), txn_factory("20")], now)

    assert up.spending_trend is SpendingTrend.UP
    assert down.spending_trend is SpendingTrend.DOWN
    assert flat.spending_trend is SpendingTrend.STABLE


def test_empty_input(now):
    snapshot = aggregate([], now)

    assert snapshot.category_data == []
    assert snapshot.average_transaction == Decimal("0")
    assert snapshot.spending_trend is SpendingTrend.STABLE
    assert len(snapshot.monthly_trends) == 6


def test_net_worth_uses_active_accounts(account_factory):
    accounts = [
        account_factory("checking", "1500.00"),
        account_factory("wallet", "250.50", AccountCategory.CRYPTO),
        account_factory("card", "-400.00", AccountCategory.CREDIT_CARD),
        account_factory("loan", "1000.00", AccountCategory.LOAN),
        account_factory("old", "9999", is_active=False),
        account_factory("misc", "50", AccountCategory.OTHER),
    ]

    totals = net_worth(accounts)

    assert totals.total_assets == Decimal("1750.50")
    assert totals.total_liabilities == Decimal("1400.00")
    assert totals.total_net_worth == Decimal("350.50")


def test_aggregate_is_deterministic(txn_factory, now):
    txns = [txn_factory("10", category="x"), txn_factory("5", TransactionType.DEPOSIT)]
    assert aggregate(txns, now) == aggregate(txns, now)
