from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from pocketledger.models import TransactionType
from pocketledger.services.import_csv import (
    ColumnMapping,
    import_csv_file,
    normalize_frame,
    rows_to_records,
)


def _write(tmp_path: Path, text: str, name: str = "ledger.csv") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_import_manual_csv_normalizes_rows(tmp_path):
    csv_path = _write(
        tmp_path,
        "ID,Date,Amount,Description,Category,Merchant,Currency,Account\n"
        "txn-1,2025-01-01,1000,Paycheck,salary,,USD,Checking\n"
        "txn-2,2025-01-02,-50.10,,groceries,Corner Shop,,Checking\n",
    )

    result = import_csv_file(csv_path=csv_path, default_currency="EUR")

    assert result.dropped == 0
    paycheck, groceries = result.transactions
    assert paycheck.type is TransactionType.DEPOSIT
    assert paycheck.amount == Decimal("1000")
    assert paycheck.account_name == "Checking"
    assert groceries.type is TransactionType.WITHDRAWAL
    assert groceries.amount == Decimal("50.10")
    assert groceries.description == "Corner Shop"
    assert groceries.currency == "EUR"
    assert groceries.timestamp == datetime(2025, 1, 2, tzinfo=timezone.utc)


def test_amounts_are_read_as_text(tmp_path):
    csv_path = _write(tmp_path, "id,date,amount\nx,2025-01-01,0.10\n")

    frame = normalize_frame(file_path=csv_path)
    assert frame.loc[0, "amount"] == "0.10"


def test_bad_rows_are_dropped_and_reported(tmp_path):
    csv_path = _write(
        tmp_path,
        "id,date,amount\n"
        "ok,2025-01-01,5\n"
        "no-amount,2025-01-01,\n"
        ",2025-01-01,7\n"
        "bad-date,someday,3\n",
    )

    result = import_csv_file(csv_path=csv_path)

    assert [t.id for t in result.transactions] == ["ok"]
    assert result.dropped == 3
    assert {e.field for e in result.errors} == {"amount", "id", "timestamp"}


def test_duplicate_headers_rejected(tmp_path):
    csv_path = _write(tmp_path, "id,Amount,amount\n1,2,3\n")

    with pytest.raises(ValueError, match="duplicate"):
        normalize_frame(file_path=csv_path)


def test_custom_column_mapping():
    rows = [{"ref": "r1", "when": "2025-02-01", "value": "-9", "memo": "Fee", "kind": "fee"}]
    mapping = ColumnMapping(
        id="ref",
        date="when",
        amount="value",
        description="memo",
        type="kind",
        category=None,
    )

    (record,) = rows_to_records(rows=rows, mapping=mapping)

    assert record.id == "r1"
    assert record.type == "fee"
    assert record.description == "Fee"
