"""Map provider-specific raw records onto the canonical ``Transaction``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from functools import singledispatch
from typing import Any, Iterable, Mapping, Optional, Union

from ..errors import ValidationError
from ..models.transaction import (
    Transaction,
    TransactionSource,
    TransactionStatus,
    TransactionType,
)
from ..money import parse_amount

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Transaction"

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d", "%m-%d-%Y", "%d-%m-%Y")


@dataclass(frozen=True, slots=True)
class BankTransactionRecord:
    """Teller/Plaid-style bank transaction as delivered by the provider."""

    id: Optional[str]
    amount: Any
    date: Any
    type: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    merchant_name: Optional[str] = None
    counterparty_name: Optional[str] = None
    category: Optional[str] = None
    running_balance: Any = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    currency: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CryptoTransactionRecord:
    """On-chain wallet transaction."""

    id: Optional[str]
    value: Any
    timestamp: Any
    type: Optional[str] = None
    status: Optional[str] = None
    hash: Optional[str] = None
    asset_symbol: Optional[str] = None
    network: Optional[str] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    wallet_id: Optional[str] = None
    wallet_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ManualTransactionRecord:
    """Hand-entered or CSV-imported transaction."""

    id: Optional[str]
    amount: Any
    timestamp: Any
    type: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    merchant_display_name: Optional[str] = None
    merchant_name: Optional[str] = None
    currency: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None


RawRecord = Union[BankTransactionRecord, CryptoTransactionRecord, ManualTransactionRecord]


@dataclass
class NormalizationResult:
    """Canonical transactions plus the errors for records that were dropped."""

    transactions: list[Transaction] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        return len(self.errors)


# Provider vocabularies. Keys are lower-cased before lookup.
_CANONICAL_TYPES = {t.value.lower(): t for t in TransactionType}

_BANK_TYPES = {
    **_CANONICAL_TYPES,
    "debit": TransactionType.WITHDRAWAL,
    "credit": TransactionType.DEPOSIT,
}

_CRYPTO_TYPES = {
    "send": TransactionType.SEND,
    "receive": TransactionType.RECEIVE,
    "swap": TransactionType.SWAP,
    "stake": TransactionType.STAKE,
    "unstake": TransactionType.UNSTAKE,
    "deposit": TransactionType.DEPOSIT,
    "withdraw": TransactionType.WITHDRAWAL,
    "approve": TransactionType.OTHER,
    "mint": TransactionType.OTHER,
    "burn": TransactionType.OTHER,
}

_MANUAL_TYPES = {
    **_CANONICAL_TYPES,
    "debit": TransactionType.WITHDRAWAL,
    "credit": TransactionType.DEPOSIT,
    "income": TransactionType.DEPOSIT,
    "expense": TransactionType.WITHDRAWAL,
}

_BANK_STATUSES = {
    "pending": TransactionStatus.PENDING,
    "posted": TransactionStatus.POSTED,
}

_CRYPTO_STATUSES = {
    "pending": TransactionStatus.PENDING,
    "confirmed": TransactionStatus.POSTED,
    "failed": TransactionStatus.FAILED,
    "dropped": TransactionStatus.CANCELLED,
}

_MANUAL_STATUSES = {
    **{s.value.lower(): s for s in TransactionStatus},
    "completed": TransactionStatus.POSTED,
    "cleared": TransactionStatus.POSTED,
}


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_id(raw_id: Any) -> str:
    record_id = _text(raw_id)
    if record_id is None:
        raise ValidationError("Record is missing an id", field="id")
    return record_id


def _parse_money(raw: Any, *, record_id: str, field_name: str = "amount") -> Decimal:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"Record is missing {field_name}", field=field_name, record_id=record_id)
    try:
        return parse_amount(raw)
    except ValueError as exc:
        raise ValidationError(
            f"Unparseable {field_name} {raw!r}", field=field_name, record_id=record_id
        ) from exc


def _parse_timestamp(raw: Any, *, record_id: str) -> datetime:
    """Return a timezone-aware UTC datetime; naive inputs are read as UTC."""

    parsed: Optional[datetime] = None
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, date):
        parsed = datetime(raw.year, raw.month, raw.day)
    elif isinstance(raw, str) and raw.strip():
        text = raw.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            raise ValidationError(
                f"Unparseable timestamp {raw!r}", field="timestamp", record_id=record_id
            )

    if parsed is None:
        raise ValidationError("Record is missing a timestamp", field="timestamp", record_id=record_id)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _resolve_type(
    explicit: Optional[str],
    signed_amount: Decimal,
    vocabulary: Mapping[str, TransactionType],
    *,
    record_id: str,
) -> TransactionType:
    """Explicit type wins; otherwise the raw sign decides deposit vs withdrawal."""

    text = _text(explicit)
    if text is not None:
        try:
            return vocabulary[text.lower()]
        except KeyError:
            raise ValidationError(
                f"Unknown transaction type {text!r}", field="type", record_id=record_id
            ) from None
    return TransactionType.WITHDRAWAL if signed_amount < 0 else TransactionType.DEPOSIT


def _resolve_status(
    explicit: Optional[str],
    vocabulary: Mapping[str, TransactionStatus],
    *,
    record_id: str,
) -> TransactionStatus:
    text = _text(explicit)
    if text is None:
        return TransactionStatus.POSTED
    try:
        return vocabulary[text.lower()]
    except KeyError:
        raise ValidationError(
            f"Unknown transaction status {text!r}", field="status", record_id=record_id
        ) from None


def describe(
    description: Optional[str],
    merchant_display_name: Optional[str] = None,
    merchant_name: Optional[str] = None,
) -> str:
    """Description, then merchant display name, then merchant name, then a literal."""

    for candidate in (description, merchant_display_name, merchant_name):
        text = _text(candidate)
        if text is not None:
            return text
    return DEFAULT_DESCRIPTION


@singledispatch
def normalize(record: Any, *, default_currency: str = "USD") -> Transaction:
    """Map one provider record to a canonical transaction.

    Raises ``ValidationError`` for malformed records; never coerces bad amounts
    to zero. The same record always yields an equal ``Transaction``.
    """

    raise ValidationError(f"Unsupported record type {type(record).__name__}", field="source")


@normalize.register
def _normalize_bank(record: BankTransactionRecord, *, default_currency: str = "USD") -> Transaction:
    record_id = _require_id(record.id)
    signed = _parse_money(record.amount, record_id=record_id)
    running_balance = None
    if _text(record.running_balance) is not None:
        running_balance = _parse_money(
            record.running_balance, record_id=record_id, field_name="running_balance"
        )
    merchant = _text(record.merchant_name) or _text(record.counterparty_name)
    return Transaction(
        id=record_id,
        type=_resolve_type(record.type, signed, _BANK_TYPES, record_id=record_id),
        status=_resolve_status(record.status, _BANK_STATUSES, record_id=record_id),
        timestamp=_parse_timestamp(record.date, record_id=record_id),
        amount=abs(signed),
        currency=(_text(record.currency) or default_currency).upper(),
        description=describe(record.description, record.merchant_name, record.counterparty_name),
        source=TransactionSource.BANK,
        category=_text(record.category),
        merchant=merchant,
        account_id=_text(record.account_id),
        account_name=_text(record.account_name),
        running_balance=running_balance,
    )


@normalize.register
def _normalize_crypto(
    record: CryptoTransactionRecord, *, default_currency: str = "USD"
) -> Transaction:
    record_id = _require_id(record.id)
    signed = _parse_money(record.value, record_id=record_id)
    return Transaction(
        id=record_id,
        type=_resolve_type(record.type, signed, _CRYPTO_TYPES, record_id=record_id),
        status=_resolve_status(record.status, _CRYPTO_STATUSES, record_id=record_id),
        timestamp=_parse_timestamp(record.timestamp, record_id=record_id),
        amount=abs(signed),
        currency=(_text(record.asset_symbol) or default_currency).upper(),
        description=describe(record.description),
        source=TransactionSource.CRYPTO,
        category=_text(record.category),
        account_id=_text(record.wallet_id),
        account_name=_text(record.wallet_name),
        hash=_text(record.hash),
    )


@normalize.register
def _normalize_manual(
    record: ManualTransactionRecord, *, default_currency: str = "USD"
) -> Transaction:
    record_id = _require_id(record.id)
    signed = _parse_money(record.amount, record_id=record_id)
    return Transaction(
        id=record_id,
        type=_resolve_type(record.type, signed, _MANUAL_TYPES, record_id=record_id),
        status=_resolve_status(record.status, _MANUAL_STATUSES, record_id=record_id),
        timestamp=_parse_timestamp(record.timestamp, record_id=record_id),
        amount=abs(signed),
        currency=(_text(record.currency) or default_currency).upper(),
        description=describe(
            record.description, record.merchant_display_name, record.merchant_name
        ),
        source=TransactionSource.MANUAL,
        category=_text(record.category),
        merchant=_text(record.merchant_display_name) or _text(record.merchant_name),
        account_id=_text(record.account_id),
        account_name=_text(record.account_name),
    )


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first present, non-empty value among ``keys``."""

    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _nested(data: Mapping[str, Any], key: str, *inner: str) -> Any:
    value = data.get(key)
    if isinstance(value, Mapping):
        return _pick(value, *inner)
    return None


def parse_record(source: Union[TransactionSource, str], data: Mapping[str, Any]) -> RawRecord:
    """Build the provider record for a loosely-typed mapping.

    Accepts camelCase (as sent by provider APIs) and snake_case keys.
    """

    try:
        kind = TransactionSource(source)
    except ValueError:
        raise ValidationError(f"Unknown record source {source!r}", field="source") from None

    if kind is TransactionSource.BANK:
        return BankTransactionRecord(
            id=_pick(data, "id", "tellerTransactionId", "transaction_id"),
            amount=data.get("amount"),
            date=_pick(data, "date", "timestamp", "posted_at"),
            type=_pick(data, "type"),
            status=_pick(data, "status"),
            description=_pick(data, "description"),
            merchant_name=_pick(data, "merchantName", "merchant_name"),
            counterparty_name=_pick(data, "counterpartyName", "counterparty_name"),
            category=_pick(data, "category"),
            running_balance=_pick(data, "runningBalance", "running_balance"),
            account_id=_pick(data, "accountId", "account_id"),
            account_name=_nested(data, "account", "name") or _pick(data, "account_name"),
            currency=_pick(data, "currency"),
        )

    if kind is TransactionSource.CRYPTO:
        return CryptoTransactionRecord(
            id=_pick(data, "id"),
            value=_pick(data, "valueFormatted", "value_formatted", "value", "amount"),
            timestamp=_pick(data, "timestamp", "date"),
            type=_pick(data, "type"),
            status=_pick(data, "status"),
            hash=_pick(data, "hash"),
            asset_symbol=_pick(data, "assetSymbol", "asset_symbol"),
            network=_pick(data, "network"),
            from_address=_pick(data, "fromAddress", "from_address"),
            to_address=_pick(data, "toAddress", "to_address"),
            description=_pick(data, "description"),
            category=_pick(data, "category"),
            wallet_id=_pick(data, "walletId", "wallet_id"),
            wallet_name=_pick(data, "walletName", "wallet_name"),
        )

    merchant = data.get("merchant")
    if isinstance(merchant, Mapping):
        display_name = _pick(merchant, "displayName", "display_name")
        merchant_name = _pick(merchant, "name")
    else:
        display_name = _pick(data, "merchantDisplayName", "merchant_display_name")
        merchant_name = _text(merchant) or _pick(data, "merchantName", "merchant_name")

    account = data.get("account")
    if isinstance(account, Mapping):
        account_id = _pick(account, "id")
        account_name = _pick(account, "name")
    else:
        account_id = _pick(data, "accountId", "account_id")
        account_name = _text(account) or _pick(data, "accountName", "account_name")

    return ManualTransactionRecord(
        id=_pick(data, "id", "transaction_id", "external_id"),
        amount=data.get("amount"),
        timestamp=_pick(data, "timestamp", "date", "occurred_at"),
        type=_pick(data, "type"),
        status=_pick(data, "status"),
        category=_pick(data, "category"),
        description=_pick(data, "description", "memo"),
        merchant_display_name=display_name,
        merchant_name=merchant_name,
        currency=_pick(data, "currency"),
        account_id=account_id,
        account_name=account_name,
    )


def normalize_many(
    records: Iterable[RawRecord], *, default_currency: str = "USD"
) -> NormalizationResult:
    """Normalize records in order, dropping and logging the ones that fail."""

    result = NormalizationResult()
    for record in records:
        try:
            result.transactions.append(normalize(record, default_currency=default_currency))
        except ValidationError as exc:
            if exc.record_id is None:
                exc.record_id = _text(getattr(record, "id", None))
            logger.warning(
                "Dropped transaction record: %s",
                exc,
                extra={"record_id": exc.record_id, "field": exc.field},
            )
            result.errors.append(exc)
    return result
