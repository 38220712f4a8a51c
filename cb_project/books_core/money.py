from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(value) -> Decimal:
    """Round to whole cents (half-up); None counts as zero."""
    if value is None:
        return ZERO
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value, field="amount") -> Decimal:
    """Parse user input (str/int/float/Decimal) into a cent-rounded Decimal."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    try:
        # str() first so floats parse as they print, not as binary expansions
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return quantize(amount)


def parse_positive_amount(value, field="amount") -> Decimal:
    amount = parse_amount(value, field)
    if amount <= ZERO:
        raise ValidationError(f"{field} must be greater than 0")
    return amount
