"""
Decimal helpers for order money fields.

All amounts are stored as NUMERIC(18, 2) and computed with Decimal; floats
only appear at the JSON boundary.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce int/str/float/Decimal/None to a 2-place Decimal (half-up)."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() keeps floats like 0.1 from dragging binary noise in
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def allocate(total: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Split ``total`` across ``weights`` proportionally, in whole cents.

    Uses largest-remainder so the parts always sum to ``total`` exactly.
    All-zero weights split evenly.
    """
    total = to_money(total)
    if not weights:
        return []
    cents = int(total / CENT)
    weight_sum = sum(weights, Decimal(0))
    if weight_sum <= 0:
        weights = [Decimal(1)] * len(weights)
        weight_sum = Decimal(len(weights))

    raw = [Decimal(cents) * w / weight_sum for w in weights]
    floors = [int(r) for r in raw]
    leftover = cents - sum(floors)
    order = sorted(range(len(raw)), key=lambda i: (raw[i] - floors[i], -i), reverse=True)
    for i in order[:leftover]:
        floors[i] += 1
    return [Decimal(c) * CENT for c in floors]
