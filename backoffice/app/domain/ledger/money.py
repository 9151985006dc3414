"""
Amount normalisation primitives.

Every money value in the ledger passes through round2 before it is stored,
compared or summed. Values are Decimals quantised to cents so that sums are
exact once rounded.
"""

import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable

Money = Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def _to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, float):
        # repr() is the shortest round-tripping form, so 1.005 stays 1.005
        d = Decimal(repr(value))
    else:
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation:
            return Decimal(0)
    if not d.is_finite():
        return Decimal(0)
    return d


def round2(value: Any) -> Money:
    """Round to cents, half away from zero. Garbage and non-finite become 0.00."""
    q = _to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    if q == 0:
        return ZERO
    return q


def non_negative(value: Any) -> Money:
    """Clamp to zero for amounts that can never be negative (remaining balances)."""
    q = round2(value)
    return q if q > 0 else ZERO


def to_money(value: Any) -> Money:
    """
    Parse a loosely typed amount ("₱1,250.50", " 300 ", 12.5) into Money.

    Anything unparseable is 0.00.
    """
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value)
        if cleaned in ("", "-", ".", "-."):
            return ZERO
        return round2(cleaned)
    return round2(value)


def money_add(a: Any, b: Any) -> Money:
    return round2(round2(a) + round2(b))


def money_sub(a: Any, b: Any) -> Money:
    return round2(round2(a) - round2(b))


def money_sum(values: Iterable[Any]) -> Money:
    """Sum rounding after every addition, never only at the end."""
    total = ZERO
    for v in values:
        total = money_add(total, v)
    return total
