"""
Price arithmetic in minor currency units.

The payment processor expects a major-unit decimal string ("42.00"); every
other layer works in integer cents.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from comedy_club.core.exceptions import BookingValidationError

_CENTS = Decimal("0.01")


def compute_total(unit_price: int, seats: int) -> int:
    """Total for `seats` tickets at `unit_price` cents each."""
    if unit_price < 0 or seats < 1:
        raise BookingValidationError("Invalid price or seat count")
    return unit_price * seats


def format_amount(minor: int) -> str:
    return str((Decimal(minor) / 100).quantize(_CENTS, rounding=ROUND_HALF_UP))


def parse_amount(text: str) -> int:
    try:
        value = Decimal(str(text).strip())
    except (InvalidOperation, ValueError):
        raise BookingValidationError(f"Invalid amount: {text!r}")
    if not value.is_finite() or value < 0:
        raise BookingValidationError(f"Invalid amount: {text!r}")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
