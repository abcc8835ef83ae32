import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from app.services.errors import InvalidQuantity

Q3 = Decimal("0.001")


def money(x) -> float:
    return float(Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def q3(x) -> Decimal:
    # use string to avoid float binary artifacts
    return Decimal(str(x)).quantize(Q3, rounding=ROUND_HALF_UP)


def parse_qty(value, *, field: str = "qty") -> Decimal:
    """Finite, non-negative quantity with 3 decimals, or InvalidQuantity."""
    if isinstance(value, bool) or value is None:
        raise InvalidQuantity(f"{field} must be a number", details={"field": field, "value": value})
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidQuantity(f"{field} must be finite", details={"field": field, "value": str(value)})
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidQuantity(f"{field} must be a number", details={"field": field, "value": str(value)})
    if not d.is_finite():
        raise InvalidQuantity(f"{field} must be finite", details={"field": field, "value": str(value)})
    if d < 0:
        raise InvalidQuantity(f"{field} cannot be negative", details={"field": field, "value": float(d)})
    return d.quantize(Q3, rounding=ROUND_HALF_UP)
