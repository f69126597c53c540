import decimal
import math
from typing import Any


def to_number(value: Any) -> int | float:
    """Coerce an aggregate result into a JSON-safe number.

    SUM() over NUMERIC comes back as ``Decimal`` on PostgreSQL and sometimes as
    a string or float elsewhere; an empty table yields ``None``. All of those,
    plus NaN and infinities, collapse to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            return 0
        return int(value) if value == value.to_integral_value() else float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() and not isinstance(value, float) else number


def is_number(value: Any) -> bool:
    """True for finite ints/floats; False for bools, strings, None, NaN and infinities."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)
