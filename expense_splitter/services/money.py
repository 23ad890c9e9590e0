# expense_splitter/services/money.py
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# absolute tolerance for money comparisons; only absorbs residual rounding
TOLERANCE = Decimal("0.01")

def to_money(value) -> Decimal:
    """Convert ints, strings, floats or Decimals to a Decimal rounded to cents."""
    if not isinstance(value, Decimal):
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)

def is_zero(value: Decimal) -> bool:
    return abs(value) < TOLERANCE
