"""CSV export of canonical transactions."""

from __future__ import annotations

import csv
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable

from ..models.transaction import Transaction

HEADERS = [
    "id",
    "timestamp",
    "type",
    "status",
    "amount",
    "signed_amount",
    "currency",
    "description",
    "category",
    "merchant",
    "account_id",
    "account_name",
    "source",
    "hash",
]


def _serialize_value(value):
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def export_transactions_csv(*, transactions: Iterable[Transaction], output_path: Path) -> Path:
    """Write transactions to CSV at `output_path`.

    Columns are deterministic (see ``HEADERS``). Returns the path written.
    """

    output_path.parent.mkdir(parents=True, exist_ok=True)

    # newline='' keeps csv from doubling line endings on Windows
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(
            fh, fieldnames=HEADERS, extrasaction="ignore", quoting=csv.QUOTE_MINIMAL
        )
        writer.writeheader()
        for tx in transactions:
            writer.writerow(
                {
                    "id": _serialize_value(tx.id),
                    "timestamp": _serialize_value(tx.timestamp),
                    "type": _serialize_value(tx.type),
                    "status": _serialize_value(tx.status),
                    "amount": _serialize_value(tx.amount),
                    "signed_amount": _serialize_value(tx.signed_amount),
                    "currency": _serialize_value(tx.currency),
                    "description": _serialize_value(tx.description),
                    "category": _serialize_value(tx.category),
                    "merchant": _serialize_value(tx.merchant),
                    "account_id": _serialize_value(tx.account_id),
                    "account_name": _serialize_value(tx.account_name),
                    "source": _serialize_value(tx.source),
                    "hash": _serialize_value(tx.hash),
                }
            )

    return output_path
