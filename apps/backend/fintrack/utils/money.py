"""
Money helpers

Every amount inside the service is an integer number of cents. These helpers
are the only place where base-unit values ("12.34") are turned into cents and
where the sign of an amount is reconciled with its transaction kind.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..core.errors import InvalidInput
from ..models import TransactionKind

_CENT = Decimal("0.01")
_SEPARATORS = re.compile(r"[\s_]")


def _to_decimal(value: str | int | float | Decimal) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInput("Amount must be a number", code="InvalidAmount")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        # repr() keeps the shortest round-tripping form: 0.1 -> "0.1"
        dec = Decimal(repr(value))
    elif isinstance(value, str):
        text = _SEPARATORS.sub("", value.strip())
        # "1,234.50" -> "1234.50"; a lone comma is a decimal separator ("12,5")
        if "," in text and "." in text:
            text = text.replace(",", "")
        elif text.count(",") == 1:
            text = text.replace(",", ".")
        if not text:
            raise InvalidInput("Amount is required", code="InvalidAmount")
        try:
            dec = Decimal(text)
        except InvalidOperation:
            raise InvalidInput(f"Could not parse amount {value!r}", code="InvalidAmount") from None
    else:
        raise InvalidInput("Amount must be a number", code="InvalidAmount")
    if not dec.is_finite():
        raise InvalidInput("Amount must be finite", code="InvalidAmount")
    return dec


def to_cents(value: str | int | float | Decimal) -> int:
    """Convert a base-unit amount into integer cents.

    Rounds half away from zero, the usual currency rounding:

        >>> to_cents("12.345")
        1235
        >>> to_cents(-0.005)
        -1
    """
    dec = _to_decimal(value)
    return int((dec * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Inverse of :func:`to_cents`, for display only."""
    return (Decimal(int(cents)) / 100).quantize(_CENT)


def ensure_cents(value: int | float | Decimal) -> int:
    """Accept an already-in-cents amount, refusing fractional cents."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInput("Amount must be integer cents", code="InvalidAmount")
    if isinstance(value, int):
        return value
    dec = _to_decimal(value)
    if dec != dec.to_integral_value():
        raise InvalidInput("Amount must be integer cents", code="InvalidAmount")
    return int(dec)


def normalize_amount_for_kind(amount_cents: int, kind: TransactionKind | None) -> int:
    """Force the sign of ``amount_cents`` to agree with ``kind``.

    DEBIT is money leaving the account (negative), CREDIT money entering it
    (positive). Without a kind the amount is returned untouched.
    """
    if kind is None:
        return amount_cents
    if kind == TransactionKind.DEBIT:
        return -abs(amount_cents)
    return abs(amount_cents)


def kind_for_amount(amount_cents: int) -> TransactionKind:
    return TransactionKind.DEBIT if amount_cents < 0 else TransactionKind.CREDIT
