"""
Unit tests for the discount rule engine used by historical statements.
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from backoffice.app.domain.ledger.pricing_rules import (
    DiscountRule,
    PricedLine,
    RuleKind,
    apply_discounts,
    rules_valid_at,
)
from backoffice.app.models.billing_enums import PricingMode, UnitKind


def line(line_id=1, product_id=10, qty="2", price="50.00", unit_kind="RETAIL"):
    return PricedLine(id=line_id, product_id=product_id, qty=Decimal(qty), unit_price=Decimal(price), unit_kind=unit_kind)


def rule(rule_id, kind, value, product_ids=None, priority=10, unit_kind=None):
    return DiscountRule(
        id=rule_id,
        name=f"rule {rule_id}",
        kind=kind,
        value=Decimal(value),
        product_ids=product_ids,
        priority=priority,
        unit_kind=unit_kind,
    )


def price_row(row_id, mode, value, starts_at=None, ends_at=None, active=True, product_id=10):
    return SimpleNamespace(
        id=row_id,
        product_id=product_id,
        unit_kind=UnitKind.RETAIL,
        mode=mode,
        value=Decimal(value),
        active=active,
        starts_at=starts_at,
        ends_at=ends_at,
    )


def test_no_rules_keeps_base_price():
    result = apply_discounts([line()], [])
    assert result.total == Decimal("100.00")
    assert result.discount_total == Decimal("0.00")
    assert result.effective_unit_prices == {1: Decimal("50.00")}


def test_override_then_percent_stacks():
    rules = [
        rule(1, RuleKind.PRICE_OVERRIDE, "40.00"),
        rule(2, RuleKind.PERCENT_OFF, "10"),
    ]
    result = apply_discounts([line()], rules)
    # 50 -> 40 -> 36
    assert result.effective_unit_prices[1] == Decimal("36.00")
    assert result.total == Decimal("72.00")
    assert result.discount_total == Decimal("28.00")
    assert {d.rule_id: d.amount for d in result.discounts} == {1: Decimal("20.00"), 2: Decimal("8.00")}


def test_only_one_override_applies_newest_first_on_ties():
    rules = [
        rule(1, RuleKind.PRICE_OVERRIDE, "45.00"),
        rule(2, RuleKind.PRICE_OVERRIDE, "42.00"),
    ]
    result = apply_discounts([line()], rules)
    assert result.effective_unit_prices[1] == Decimal("42.00")


def test_higher_priority_override_wins():
    rules = [
        rule(1, RuleKind.PRICE_OVERRIDE, "45.00", priority=20),
        rule(2, RuleKind.PRICE_OVERRIDE, "42.00"),
    ]
    result = apply_discounts([line()], rules)
    assert result.effective_unit_prices[1] == Decimal("45.00")


def test_amount_off_never_goes_negative():
    result = apply_discounts([line(price="5.00")], [rule(1, RuleKind.AMOUNT_OFF, "8.00")])
    assert result.effective_unit_prices[1] == Decimal("0.00")


def test_rule_scoped_to_other_product_is_ignored():
    result = apply_discounts([line()], [rule(1, RuleKind.PERCENT_OFF, "50", product_ids=[99])])
    assert result.total == Decimal("100.00")


def test_unit_kind_mismatch_is_ignored():
    result = apply_discounts([line(unit_kind="RETAIL")], [rule(1, RuleKind.PERCENT_OFF, "50", unit_kind="PACK")])
    assert result.total == Decimal("100.00")


def test_rules_valid_at_window():
    at = datetime(2025, 3, 15, tzinfo=timezone.utc)
    rows = [
        price_row(1, PricingMode.FIXED_PRICE, "40.00", starts_at=datetime(2025, 3, 1, tzinfo=timezone.utc)),
        price_row(2, PricingMode.PERCENT_DISCOUNT, "10", ends_at=datetime(2025, 3, 10, tzinfo=timezone.utc)),
        price_row(3, PricingMode.FIXED_DISCOUNT, "5.00", starts_at=datetime(2025, 4, 1, tzinfo=timezone.utc)),
        price_row(4, PricingMode.PERCENT_DISCOUNT, "20", active=False),
        # Naive timestamps are read as UTC
        price_row(5, PricingMode.PERCENT_DISCOUNT, "5", starts_at=datetime(2025, 3, 15), ends_at=datetime(2025, 3, 15)),
    ]
    valid = rules_valid_at(rows, at)
    assert [(r.id, r.kind) for r in valid] == [(1, RuleKind.PRICE_OVERRIDE), (5, RuleKind.PERCENT_OFF)]
    assert valid[0].product_ids == [10]
    assert valid[0].unit_kind == "RETAIL"


def test_fixed_discount_row_maps_to_amount_off():
    rows = [price_row(1, PricingMode.FIXED_DISCOUNT, "5.00")]
    valid = rules_valid_at(rows, datetime(2025, 1, 1, tzinfo=timezone.utc))
    result = apply_discounts([line()], valid)
    assert valid[0].kind == RuleKind.AMOUNT_OFF
    assert result.effective_unit_prices[1] == Decimal("45.00")
