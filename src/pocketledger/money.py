"""Exact money helpers.

Amounts are kept as ``Decimal`` end to end. Floats are only accepted at the
boundary and are converted through ``str`` so ``0.1`` stays ``Decimal("0.1")``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0")

_STRIP_CHARS = ("$", "€", "£", ",", " ", " ")


def parse_amount(raw: object) -> Decimal:
    """Parse a string or number into a finite ``Decimal``.

    Handles currency symbols, thousands separators and accounting-style
    negatives such as ``(100.00)``. Raises ``ValueError`` for anything else.
    """

    if raw is None or isinstance(raw, bool):
        raise ValueError(f"not a monetary amount: {raw!r}")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, float):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        cleaned = raw.strip()
        for char in _STRIP_CHARS:
            cleaned = cleaned.replace(char, "")
        # Handle parentheses for negative: (100.00) -> -100.00
        if cleaned.startswith("(") and cleaned.endswith(")"):
            cleaned = "-" + cleaned[1:-1]
        if not cleaned:
            raise ValueError(f"not a monetary amount: {raw!r}")
        try:
            value = Decimal(cleaned)
        except InvalidOperation as exc:
            raise ValueError(f"not a monetary amount: {raw!r}") from exc
    else:
        raise ValueError(f"not a monetary amount: {raw!r}")

    if not value.is_finite():
        raise ValueError(f"not a finite amount: {raw!r}")
    return value


def quantize(value: Decimal, exponent: Decimal = CENT) -> Decimal:
    """Round half-up to ``exponent`` (cents by default)."""

    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def total(values: Iterable[Decimal]) -> Decimal:
    """Sum ``Decimal`` values starting from an exact zero."""

    return sum(values, ZERO)
