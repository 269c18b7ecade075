"""
Input validation for user-entered values.

Price and quantity fields arrive as free text or numbers; anything that
does not parse to a finite, non-negative decimal is rejected before any
entity is touched.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .exceptions import ValidationException

MAX_TEXT_LENGTH = 2000

# Decimal places stored for each kind of amount
MONEY_PLACES = 2
QUANTITY_PLACES = 3


def parse_amount(
    field: str,
    value: Any,
    allow_zero: bool = True,
    places: Optional[int] = None,
) -> Decimal:
    """
    Parse a monetary amount or quantity.

    Args:
        field: Field name for error reporting
        value: Raw value (str, int, float or Decimal)
        allow_zero: Whether zero is acceptable
        places: Maximum decimal places, None for no limit

    Returns:
        Parsed Decimal

    Raises:
        ValidationException: If the value is malformed, negative, not finite
            or more precise than ``places`` allows
    """
    if value is None or isinstance(value, bool):
        raise ValidationException(field, value, "A number is required")

    text = str(value).strip()
    if not text:
        raise ValidationException(field, value, "A number is required")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationException(field, value, "Please enter a valid number")

    if not amount.is_finite():
        raise ValidationException(field, value, "Please enter a valid number")
    if amount < 0:
        raise ValidationException(field, value, "Must not be negative")
    if amount == 0 and not allow_zero:
        raise ValidationException(field, value, "Must be greater than zero")
    if places is not None:
        try:
            exact = amount == amount.quantize(Decimal(1).scaleb(-places))
        except InvalidOperation:
            raise ValidationException(field, value, "Number is too large")
        if not exact:
            raise ValidationException(field, value, f"At most {places} decimal places are allowed")
    return amount


def parse_money(field: str, value: Any, allow_zero: bool = True) -> Decimal:
    return parse_amount(field, value, allow_zero, places=MONEY_PLACES)


def parse_quantity(field: str, value: Any, allow_zero: bool = False) -> Decimal:
    return parse_amount(field, value, allow_zero, places=QUANTITY_PLACES)


def require_text(field: str, value: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """Return stripped text, rejecting blanks and oversize input."""
    text = (value or "").strip()
    if not text:
        raise ValidationException(field, value, "This field is required")
    if len(text) > max_length:
        raise ValidationException(field, value, f"Must be at most {max_length} characters")
    return text


def parse_rating(value: Any) -> Decimal:
    """Validate a 1-5 star review score."""
    score = parse_amount("rating", value, places=MONEY_PLACES)
    if not (Decimal("1") <= score <= Decimal("5")):
        raise ValidationException("rating", value, "Rating must be between 1 and 5")
    return score
