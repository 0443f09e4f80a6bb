"""CSV ingestion of manually entered transactions."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Iterable, Mapping

import pandas as pd

from ..models.transaction import TransactionSource
from .normalizer import ManualTransactionRecord, NormalizationResult, normalize_many, parse_record


@dataclass(slots=True)
class ColumnMapping:
    """Maps manual record fields to CSV headers.

    The defaults match the manual-entry export; optional columns may be
    absent from the file.
    """

    id: str = "id"
    date: str = "date"
    amount: str = "amount"
    description: str | None = "description"
    category: str | None = "category"
    merchant: str | None = "merchant"
    currency: str | None = "currency"
    account: str | None = "account"
    type: str | None = "type"
    status: str | None = "status"


def normalize_frame(*, file_path: Path, encoding: str = "utf-8") -> pd.DataFrame:
    """Load a CSV file into a DataFrame with consistent column casing.

    Every cell is read as text so amounts reach the normalizer unrounded.
    """

    frame = pd.read_csv(file_path, encoding=encoding, dtype=str, keep_default_na=False)
    frame.columns = [c.strip().lower() for c in frame.columns]
    if frame.columns.duplicated().any():
        dupes = sorted(set(frame.columns[frame.columns.duplicated()]))
        raise ValueError(f"duplicate CSV headers: {', '.join(dupes)}")
    return frame


def rows_to_records(
    *, rows: Iterable[Mapping], mapping: ColumnMapping | None = None
) -> list[ManualTransactionRecord]:
    """Convert dict-like CSV rows into manual provider records.

    Header names are translated through ``mapping``; blank cells count as
    missing. Nothing is validated here, ``normalize_many`` does that.
    """

    mapping = mapping or ColumnMapping()
    records: list[ManualTransactionRecord] = []
    for row in rows:
        data = {}
        for column in fields(mapping):
            header = getattr(mapping, column.name)
            if header is None:
                continue
            value = row.get(header)
            if isinstance(value, str):
                value = value.strip() or None
            data[column.name] = value
        records.append(parse_record(TransactionSource.MANUAL, data))
    return records


def import_csv_file(
    *,
    csv_path: Path,
    mapping: ColumnMapping | None = None,
    default_currency: str = "USD",
) -> NormalizationResult:
    """Parse the file and normalize every row; failing rows are dropped and reported."""

    frame = normalize_frame(file_path=csv_path)
    rows = frame.to_dict(orient="records")
    records = rows_to_records(rows=rows, mapping=mapping)
    return normalize_many(records, default_currency=default_currency)
