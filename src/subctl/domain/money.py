"""Money helpers. Amounts are stored as integer cents."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_CENT = Decimal("0.01")


def parse_amount(raw: str) -> Decimal:
    """Parse a non-negative decimal amount with at most two places.

    Raises:
        ValueError: If *raw* is not a finite number, is negative, or has
            more than two decimal places.
    """
    try:
        amount = Decimal(raw.strip())
    except InvalidOperation as exc:
        msg = f"not a number: {raw!r}"
        raise ValueError(msg) from exc
    if not amount.is_finite():
        msg = f"not a number: {raw!r}"
        raise ValueError(msg)
    if amount < 0:
        msg = f"amount must be >= 0, got {raw}"
        raise ValueError(msg)
    if amount != amount.quantize(_CENT):
        msg = f"amount has more than two decimal places: {raw}"
        raise ValueError(msg)
    return amount


def to_cents(amount: Decimal | int | float | str) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(_CENT)


def format_amount(cents: int, currency: str) -> str:
    """Human form, e.g. ``20.00 USD``."""
    return f"{from_cents(cents)} {currency}"
