"""
Money helpers shared by models and engines.

All monetary values are ``Decimal``.  Floats are never accepted, because a
float literal such as ``0.1`` cannot be represented exactly.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger_kernel.exceptions import ValidationError

ZERO = Decimal("0")


def to_money(value: Decimal | int | str, field: str = "amount") -> Decimal:
    """
    Coerce an input to Decimal without going through float.

    Raises:
        ValidationError: If the value is a float, not a finite number, or
            cannot be parsed.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(
            f"{field} must be a Decimal, int or str, not {type(value).__name__}",
            field=field,
            value=value,
        )
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(
                f"{field} is not a valid decimal: {value!r}", field=field, value=value
            ) from None
    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", field=field, value=value)
    return amount


def require_positive(value: Decimal | int | str, field: str = "amount") -> Decimal:
    """Return the amount as Decimal, raising ValidationError unless it is > 0."""
    amount = to_money(value, field)
    if amount <= ZERO:
        raise ValidationError(
            f"{field} must be greater than zero", field=field, value=amount
        )
    return amount


def require_non_negative(value: Decimal | int | str, field: str) -> Decimal:
    amount = to_money(value, field)
    if amount < ZERO:
        raise ValidationError(f"{field} cannot be negative", field=field, value=amount)
    return amount


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """Round to the given number of places for display only."""
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)
