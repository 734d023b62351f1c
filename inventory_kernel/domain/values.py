"""
Value helpers -- quantity and money arithmetic.

Responsibility:
    Input validation for whole-unit quantities and Decimal prices, and the
    single rounding rule used for sale subtotals.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    SALE_TOTAL -- subtotals are quantized once, half-up, to the configured
        currency places; the sale total is the exact sum of those values.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from inventory_kernel.exceptions import InvalidPriceError, InvalidQuantityError


def require_positive_quantity(quantity) -> int:
    """
    Return ``quantity`` if it is a positive whole number.

    Booleans and floats are rejected even when they look integral.

    Raises:
        InvalidQuantityError: If quantity is not an int or is <= 0.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity, reason="must be a whole number of units")
    if quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


def require_price(unit_price) -> Decimal:
    """
    Coerce ``unit_price`` to Decimal and check it is finite and >= 0.

    Strings and ints are accepted; floats are rejected to keep binary
    fractions out of money.

    Raises:
        InvalidPriceError: If the value is a float, non-numeric, NaN,
            infinite or negative.
    """
    if isinstance(unit_price, bool) or isinstance(unit_price, float):
        raise InvalidPriceError(unit_price)
    try:
        price = unit_price if isinstance(unit_price, Decimal) else Decimal(str(unit_price))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPriceError(unit_price) from None
    if not price.is_finite() or price < 0:
        raise InvalidPriceError(unit_price)
    return price


def quantize_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round ``amount`` half-up to ``places`` decimal places."""
    exponent = Decimal(1).scaleb(-places)
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: int, unit_price: Decimal, places: int = 2) -> Decimal:
    return quantize_money(unit_price * quantity, places)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes read back from backends without zone
    support (SQLite); convert aware ones to UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
