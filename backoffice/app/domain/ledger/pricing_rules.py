"""
Discount Rule Engine.

Reprices order lines with the customer item price rules that were valid at
a given instant ("time-travel pricing"). Used only by historical statements;
frozen receipt lines are never repriced.

Rule semantics:
1. Rules are sorted by priority (desc), newer rules first on ties.
2. Per line, the first matching override (PRICE_OVERRIDE / AMOUNT_OFF) sets
   the unit price. Overrides do not stack.
3. Every matching PERCENT_OFF rule is then applied multiplicatively.
Each step is rounded to cents.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from backoffice.app.domain.ledger.money import ZERO, money_add, money_sub, non_negative, round2
from backoffice.app.domain.ledger.periods import as_utc
from backoffice.app.models.billing_enums import PricingMode

HUNDRED = Decimal(100)


class RuleKind(str, enum.Enum):
    PRICE_OVERRIDE = "PRICE_OVERRIDE"
    AMOUNT_OFF = "AMOUNT_OFF"
    PERCENT_OFF = "PERCENT_OFF"


class DiscountRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    kind: RuleKind
    value: Decimal
    product_ids: Optional[List[int]] = None
    unit_kind: Optional[str] = None
    priority: int = 10
    enabled: bool = True

    def matches(self, line: "PricedLine") -> bool:
        if self.product_ids is not None and line.product_id not in self.product_ids:
            return False
        if self.unit_kind and line.unit_kind and self.unit_kind != line.unit_kind:
            return False
        return True


class PricedLine(BaseModel):
    """A line to price: base unit price before any rule."""
    model_config = ConfigDict(frozen=True)

    id: int
    product_id: int
    name: str = ""
    qty: Decimal
    unit_price: Decimal
    unit_kind: Optional[str] = None


class AppliedDiscount(BaseModel):
    rule_id: int
    name: str
    amount: Decimal


class PricingResult(BaseModel):
    subtotal: Decimal
    discounts: List[AppliedDiscount]
    discount_total: Decimal
    total: Decimal
    effective_unit_prices: Dict[int, Decimal]


def _rule_from_row(row) -> DiscountRule:
    mode = PricingMode(getattr(row.mode, "value", row.mode))
    unit_kind = getattr(row.unit_kind, "value", row.unit_kind)
    common = dict(
        id=row.id,
        product_ids=[row.product_id],
        unit_kind=unit_kind,
        priority=10,
        enabled=bool(row.active),
    )
    if mode == PricingMode.FIXED_PRICE:
        return DiscountRule(name="Customer Price", kind=RuleKind.PRICE_OVERRIDE, value=round2(row.value), **common)
    if mode == PricingMode.PERCENT_DISCOUNT:
        return DiscountRule(name="Customer % Off", kind=RuleKind.PERCENT_OFF, value=round2(row.value), **common)
    return DiscountRule(name="Customer Fixed Off", kind=RuleKind.AMOUNT_OFF, value=round2(row.value), **common)


def rules_valid_at(rows: Iterable, at: datetime) -> List[DiscountRule]:
    """
    Select the customer item price rows valid at an instant and convert them.

    A row is valid when active and starts_at <= at <= ends_at, with either
    end left open when null.
    """
    at = as_utc(at)
    valid = []
    for row in rows:
        if not row.active:
            continue
        if row.starts_at is not None and as_utc(row.starts_at) > at:
            continue
        if row.ends_at is not None and as_utc(row.ends_at) < at:
            continue
        valid.append(_rule_from_row(row))
    return valid


def _sorted_rules(rules: Sequence[DiscountRule]) -> List[DiscountRule]:
    active = [r for r in rules if r.enabled]
    return sorted(active, key=lambda r: (-r.priority, -r.id))


def apply_discounts(lines: Sequence[PricedLine], rules: Sequence[DiscountRule]) -> PricingResult:
    """Price every line with the given rules. Lines without a match keep their unit price."""
    ordered = _sorted_rules(rules)
    per_rule: Dict[int, AppliedDiscount] = {}
    effective: Dict[int, Decimal] = {}

    subtotal = ZERO
    total = ZERO

    def _record(rule: DiscountRule, delta: Decimal) -> None:
        if delta <= 0:
            return
        entry = per_rule.setdefault(rule.id, AppliedDiscount(rule_id=rule.id, name=rule.name, amount=ZERO))
        entry.amount = money_add(entry.amount, delta)

    for line in lines:
        orig = round2(line.unit_price)
        qty = line.qty
        subtotal = money_add(subtotal, orig * qty)

        matching = [r for r in ordered if r.matches(line)]
        override = next(
            (r for r in matching if r.kind in (RuleKind.PRICE_OVERRIDE, RuleKind.AMOUNT_OFF)),
            None,
        )
        eff = orig

        if override is not None:
            if override.kind == RuleKind.PRICE_OVERRIDE:
                nxt = round2(override.value)
            else:
                nxt = non_negative(orig - override.value)
            _record(override, non_negative((eff - nxt) * qty))
            eff = nxt

        for rule in matching:
            if rule.kind != RuleKind.PERCENT_OFF or rule.value <= 0:
                continue
            nxt = round2(eff * (1 - rule.value / HUNDRED))
            _record(rule, non_negative((eff - nxt) * qty))
            eff = nxt

        effective[line.id] = eff
        total = money_add(total, eff * qty)

    return PricingResult(
        subtotal=subtotal,
        discounts=list(per_rule.values()),
        discount_total=money_sub(subtotal, total),
        total=total,
        effective_unit_prices=effective,
    )
