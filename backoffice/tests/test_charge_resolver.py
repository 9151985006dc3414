"""
Unit tests for charge amount resolution.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from backoffice.app.domain.ledger.charge_resolver import (
    LedgerEntrySnapshot,
    OrderItemSnapshot,
    OrderSnapshot,
    ReceiptLineSnapshot,
    RemitSnapshot,
    resolve_ledger_entry_charge,
    resolve_order_charge,
    resolve_remit_charge,
)
from backoffice.app.models.billing_enums import OrderChannel, PricingMode, UnitKind
from backoffice.app.schemas.ledger import ChargeResolution, ChargeSourceKind

AT = datetime(2025, 3, 5, 2, 0, tzinfo=timezone.utc)


def receipt_line(line_id, total, qty="1", price=None):
    return ReceiptLineSnapshot(
        id=line_id,
        product_id=10,
        name="LPG 11kg",
        qty=Decimal(qty),
        unit_price=Decimal(price or total),
        line_total=Decimal(total),
    )


def item(item_id, qty, price, line_total=None):
    return OrderItemSnapshot(
        id=item_id,
        product_id=10,
        name="LPG 11kg",
        qty=Decimal(qty),
        unit_price=Decimal(price),
        unit_kind=UnitKind.RETAIL,
        line_total=Decimal(line_total) if line_total is not None else None,
    )


def order(**overrides):
    data = dict(
        id=7,
        customer_id=1,
        order_code="ORD-0007",
        channel=OrderChannel.DELIVERY,
        occurred_at=AT,
    )
    data.update(overrides)
    return OrderSnapshot(**data)


def test_origin_receipt_wins_over_everything():
    snap = order(
        origin_receipt_key="ROAD:3",
        origin_receipt_lines=[receipt_line(1, "120.00")],
        parent_receipt_lines=[receipt_line(2, "150.00")],
        items=[item(1, "1", "150.00")],
    )
    charge = resolve_order_charge(snap)
    assert charge.amount == Decimal("120.00")
    assert charge.resolved_from == ChargeResolution.ORIGIN_RECEIPT
    assert charge.label == "Order ORD-0007 (DELIVERY) • ROAD:3"


def test_parent_receipt_wins_over_live_items():
    snap = order(
        parent_receipt_key="PARENT:7",
        parent_receipt_lines=[receipt_line(1, "100.00"), receipt_line(2, "20.50")],
        items=[item(1, "1", "150.00")],
    )
    charge = resolve_order_charge(snap)
    assert charge.amount == Decimal("120.50")
    assert charge.resolved_from == ChargeResolution.PARENT_RECEIPT


def test_live_items_use_frozen_line_total_when_present():
    snap = order(items=[item(1, "2", "50.00", line_total="90.00"), item(2, "3", "10.333")])
    charge = resolve_order_charge(snap, include_items=True)
    # 90.00 + 3 * 10.33
    assert charge.amount == Decimal("120.99")
    assert charge.resolved_from == ChargeResolution.LIVE_ITEMS
    assert [i.line_total for i in charge.items] == [Decimal("90.00"), Decimal("30.99")]
    assert charge.items[0].effective_unit_price == Decimal("45.00")


def test_items_only_attached_on_request():
    charge = resolve_order_charge(order(items=[item(1, "1", "10.00")]))
    assert charge.items is None


def test_historical_mode_reprices_with_rules_at_order_time():
    rows = [
        SimpleNamespace(
            id=1, product_id=10, unit_kind=UnitKind.RETAIL, mode=PricingMode.FIXED_PRICE,
            value=Decimal("40.00"), active=True, starts_at=AT - timedelta(days=10), ends_at=AT + timedelta(days=1),
        ),
        SimpleNamespace(
            id=2, product_id=10, unit_kind=UnitKind.RETAIL, mode=PricingMode.FIXED_PRICE,
            value=Decimal("30.00"), active=True, starts_at=AT + timedelta(days=2), ends_at=None,
        ),
    ]
    snap = order(items=[item(1, "2", "50.00")])
    live = resolve_order_charge(snap)
    repriced = resolve_order_charge(snap, historical_pricing=True, rule_rows=rows, include_items=True)

    assert live.amount == Decimal("100.00")
    assert repriced.amount == Decimal("80.00")
    assert repriced.resolved_from == ChargeResolution.RULES_AT_TIME
    assert repriced.items[0].unit_price == Decimal("50.00")
    assert repriced.items[0].effective_unit_price == Decimal("40.00")


def test_historical_mode_never_reprices_receipts():
    rows = [
        SimpleNamespace(
            id=1, product_id=10, unit_kind=UnitKind.RETAIL, mode=PricingMode.PERCENT_DISCOUNT,
            value=Decimal("50"), active=True, starts_at=None, ends_at=None,
        ),
    ]
    snap = order(origin_receipt_lines=[receipt_line(1, "120.00")])
    charge = resolve_order_charge(snap, historical_pricing=True, rule_rows=rows)
    assert charge.amount == Decimal("120.00")
    assert charge.resolved_from == ChargeResolution.ORIGIN_RECEIPT


def test_unresolvable_order_is_zero_and_logged(caplog):
    with caplog.at_level(logging.WARNING):
        charge = resolve_order_charge(order())
    assert charge.amount == Decimal("0.00")
    assert charge.resolved_from == ChargeResolution.UNRESOLVED
    assert "no resolvable line source" in caplog.text


def test_resolution_is_deterministic():
    snap = order(items=[item(1, "3", "33.335")])
    assert resolve_order_charge(snap) == resolve_order_charge(snap)


def test_order_due_date_defaults_to_credit_days():
    charge = resolve_order_charge(order(items=[item(1, "1", "10")]), credit_days=15)
    assert charge.due_at == AT + timedelta(days=15)
    assert charge.id == "ORDER:7"
    assert charge.reference_id == 7


def test_naive_instants_are_read_as_utc():
    charge = resolve_order_charge(order(occurred_at=AT.replace(tzinfo=None), items=[item(1, "1", "10")]))
    assert charge.occurred_at == AT
    assert charge.occurred_at.tzinfo is not None


def test_standalone_remit_charge():
    remit = RemitSnapshot(
        id=4, customer_id=1, run_id=12, receipt_key="PARENT:4", occurred_at=AT,
        lines=[receipt_line(1, "75.25"), receipt_line(2, "24.75")],
    )
    charge = resolve_remit_charge(remit)
    assert charge.amount == Decimal("100.00")
    assert charge.source_kind == ChargeSourceKind.PARENT_REMIT
    assert charge.label == "Remit PARENT:4 • Run #12"


def test_empty_remit_is_unresolved():
    remit = RemitSnapshot(id=4, customer_id=1, run_id=12, receipt_key="PARENT:4", occurred_at=AT)
    charge = resolve_remit_charge(remit)
    assert charge.amount == Decimal("0.00")
    assert charge.resolved_from == ChargeResolution.UNRESOLVED


def test_ledger_entry_charge_uses_principal_and_due_date():
    due = AT + timedelta(days=7)
    entry = LedgerEntrySnapshot(
        id=9, customer_id=1, principal=Decimal("250.505"), occurred_at=AT, due_date=due,
        decision_kind="RIDER_SHORTAGE", receipt_key="ROAD:2",
    )
    charge = resolve_ledger_entry_charge(entry)
    assert charge.amount == Decimal("250.51")
    assert charge.due_at == due
    assert charge.resolved_from == ChargeResolution.LEDGER_PRINCIPAL
    assert charge.label == "A/R #9 • RIDER_SHORTAGE • ROAD:2"


def test_negative_principal_is_clamped():
    entry = LedgerEntrySnapshot(id=9, customer_id=1, principal=Decimal("-10"), occurred_at=AT)
    assert resolve_ledger_entry_charge(entry).amount == Decimal("0.00")
