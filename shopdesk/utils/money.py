# shopdesk/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def non_negative(x) -> Money:
    x = round_money(x)
    return x if x > 0 else ZERO

def to_string_money(x) -> str | None:
    if x is None:
        return None
    return str(round_money(x))

def parse_money(value, field: str, *, required=True, allow_zero=True):
    """Parse user input into Money, raising ValidationError with the field name."""
    from ..errors import ValidationError

    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required", {field: "required"})
        return None
    try:
        amount = Decimal(str(value).strip())
    except (ArithmeticError, ValueError):
        raise ValidationError(f"{field} must be numeric", {field: "invalid"})
    if not amount.is_finite():
        raise ValidationError(f"{field} must be numeric", {field: "invalid"})
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}", {field: "out_of_range"})
    return round_money(amount)
