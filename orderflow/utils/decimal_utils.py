# orderflow/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

TWOPLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}")
    # NaN and Infinity survive Decimal() but break every comparison
    if not d.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def format_inr(amount: Decimal) -> str:
    return f"₹ {to_decimal(amount):,.2f}"
