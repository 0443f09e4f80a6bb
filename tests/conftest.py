"""Pytest configuration and shared fixtures for PocketLedger tests.

Provides an isolated SQLite database, a fixed clock and factories for
transactions, envelopes and accounts so service tests never touch real data.
"""

from __future__ import annotations

import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from pocketledger.models import (
    Account,
    AccountCategory,
    AccountSource,
    Envelope,
    Transaction,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)
from pocketledger.infra.database import create_session_factory

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_data_dir(monkeypatch, tmp_path):
    """Point config at a throwaway data dir so tests never write ``instance/``."""

    monkeypatch.setenv("POCKETLEDGER_DATA_DIR", str(tmp_path / "instance"))
    monkeypatch.setenv("POCKETLEDGER_DATABASE_URL", f"sqlite:///{tmp_path / 'app.db'}")
    for name in (
        "POCKETLEDGER_DEV_MODE",
        "POCKETLEDGER_DEFAULT_CURRENCY",
        "POCKETLEDGER_TOP_CATEGORIES",
        "POCKETLEDGER_TREND_MONTHS",
        "POCKETLEDGER_BULK_TIMEOUT",
        "POCKETLEDGER_AUTO_SYNC_HOUR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def now() -> datetime:
    """Fixed anchor time used by date-range and trend tests."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the one repositories receive in production."""
    return create_session_factory(db_engine)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def txn_factory(now):
    """Factory for canonical transactions.

    Returns:
        Callable: Function that builds Transaction instances
    """

    counter = {"n": 0}

    def _create_transaction(
        amount: str | Decimal = "10.00",
        txn_type: TransactionType = TransactionType.WITHDRAWAL,
        *,
        timestamp: datetime | None = None,
        category: str | None = None,
        description: str = "Transaction",
        status: TransactionStatus = TransactionStatus.POSTED,
        txn_id: str | None = None,
        **extra,
    ) -> Transaction:
        counter["n"] += 1
        return Transaction(
            id=txn_id or f"t{counter['n']}",
            type=txn_type,
            status=status,
            timestamp=timestamp or now,
            amount=Decimal(str(amount)),
            currency=extra.pop("currency", "USD"),
            description=description,
            source=extra.pop("source", TransactionSource.MANUAL),
            category=category,
            **extra,
        )

    return _create_transaction


@pytest.fixture
def envelope_factory():
    """Factory for unsaved envelopes.

    Returns:
        Callable: Function that builds Envelope instances
    """

    def _create_envelope(
        name: str,
        allocated: str = "0",
        spent: str = "0",
        group: str = "Essentials",
    ) -> Envelope:
        return Envelope(
            id=name.lower(),
            name=name,
            group_name=group,
            allocated_amount=Decimal(allocated),
            spent_amount=Decimal(spent),
        )

    return _create_envelope


@pytest.fixture
def account_factory():
    """Factory for unsaved accounts.

    Returns:
        Callable: Function that builds Account instances
    """

    def _create_account(
        account_id: str,
        balance: str = "0",
        category: AccountCategory = AccountCategory.CASH,
        *,
        is_active: bool = True,
        source: AccountSource = AccountSource.PROVIDER,
    ) -> Account:
        return Account(
            id=account_id,
            name=account_id.title(),
            category=category.value,
            balance=Decimal(balance),
            source=source.value,
            is_active=is_active,
        )

    return _create_account


class StubUpdater:
    """In-memory allocation updater that records calls and can fail by id."""

    def __init__(self, envelopes, fail: dict[str, Exception] | None = None):
        self.envelopes = {e.id: e for e in envelopes}
        self.fail = fail or {}
        self.calls: list[tuple[str, Decimal]] = []

    async def update_allocation(self, envelope_id: str, amount: Decimal) -> Envelope:
        self.calls.append((envelope_id, amount))
        if envelope_id in self.fail:
            raise self.fail[envelope_id]
        envelope = self.envelopes[envelope_id]
        envelope.allocated_amount = amount
        return envelope


@pytest.fixture
def stub_updater():
    """Build a ``StubUpdater`` for a list of envelopes."""
    return StubUpdater
