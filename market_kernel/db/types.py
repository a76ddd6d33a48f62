"""
Module: market_kernel.db.types
Responsibility: Shared column types and money helpers shared by every model
    and service, so column precision and rounding are defined in one place.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Every monetary column is Money (Numeric(12, 2))
      and every computed amount is rounded through round_money().
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Numeric, String, Text

# Monetary amount in major units with cent precision.  Base maps every
# Mapped[Decimal] column to this type.
Money = Numeric(12, 2)

# Display names (events, items, deals)
Name = String(200)

# Short identifier strings (categories, terminal labels, bake references)
ShortCode = String(50)

# Free-form text (descriptions, notes)
LongText = Text


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal into a cent-precision Decimal.

    Floats are rejected: a float price has already lost precision.

    Raises:
        TypeError: If value is a float.
        decimal.InvalidOperation: If a string is not numeric.
    """
    if isinstance(value, float):
        raise TypeError(f"Monetary amounts must not be floats: {value!r}")
    return round_money(Decimal(value))


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the only rounding function used for money in the kernel.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100 rounded to two places; zero when whole is zero."""
    if not whole:
        return ZERO
    return round_money(Decimal(part) * 100 / Decimal(whole))


def safe_ratio(numerator: Decimal | int, denominator: Decimal | int) -> Decimal:
    """numerator / denominator rounded to cents; zero when denominator is zero."""
    if not denominator:
        return ZERO
    return round_money(Decimal(numerator) / Decimal(denominator))
