"""Decimal precision helpers shared by aggregation value objects."""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union

from ..exceptions import ValidationError

SCORE_SCALE = 100.0
# Largest population variance of scores on a 0-100 scale that is treated as
# fully polarized (stddev 25).
MAX_SCORE_VARIANCE = 625.0
QUANTUM = Decimal("0.001")


def to_decimal(value: Union[float, int, Decimal]) -> Decimal:
    """Quantize a computed value to three decimal places."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"Cannot represent non-finite value {value}")

    result = Decimal(str(value)).quantize(QUANTUM, rounding=ROUND_HALF_UP)
    if result == 0:
        return Decimal("0.000")
    return result


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a user supplied number into a Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number, got {value!r}")

    try:
        result = Decimal(str(value))
    except (ArithmeticError, ValueError) as e:
        raise ValidationError(f"{field_name} must be a number, got {value!r}") from e

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}")

    return result
