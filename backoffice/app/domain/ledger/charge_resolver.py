"""
Charge Resolver.

Determines the canonical frozen amount of a charge-worthy record.

Resolution order for an order (first non-empty source wins):
1. Lines of the origin receipt printed at dispatch (roadside orders)
2. Lines of a PARENT remit receipt covering the order
3. Live item lines on the order, summed directly
4. Historical mode only: live item lines repriced with the discount
   rules valid at the order's instant (replaces step 3)

Nothing resolvable gives a zero-amount charge that stays visible in the
ledger. Resolution is a pure function of the snapshot, so repeated calls on
unchanged rows return the same amount.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from backoffice.app.core.config import settings
from backoffice.app.domain.ledger.money import ZERO, money_sum, non_negative, round2
from backoffice.app.domain.ledger.periods import as_utc
from backoffice.app.domain.ledger.pricing_rules import PricedLine, apply_discounts, rules_valid_at
from backoffice.app.models.billing_enums import OrderChannel, UnitKind
from backoffice.app.schemas.ledger import Charge, ChargeItem, ChargeResolution, ChargeSourceKind

logger = logging.getLogger(__name__)


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class ReceiptLineSnapshot(_Snapshot):
    id: int
    product_id: int
    name: str
    qty: Decimal
    unit_price: Decimal
    line_total: Decimal


class OrderItemSnapshot(_Snapshot):
    id: int
    product_id: int
    name: str
    qty: Decimal
    unit_price: Decimal
    unit_kind: Optional[UnitKind] = None
    line_total: Optional[Decimal] = None


class OrderSnapshot(_Snapshot):
    id: int
    customer_id: int
    order_code: str
    channel: Optional[OrderChannel] = None
    occurred_at: datetime
    items: List[OrderItemSnapshot] = Field(default_factory=list)
    origin_receipt_key: Optional[str] = None
    origin_receipt_lines: List[ReceiptLineSnapshot] = Field(default_factory=list)
    parent_receipt_key: Optional[str] = None
    parent_receipt_lines: List[ReceiptLineSnapshot] = Field(default_factory=list)


class RemitSnapshot(_Snapshot):
    """Standalone PARENT remit receipt charged to a customer."""
    id: int
    customer_id: int
    run_id: int
    receipt_key: str
    occurred_at: datetime
    lines: List[ReceiptLineSnapshot] = Field(default_factory=list)


class LedgerEntrySnapshot(_Snapshot):
    """A/R entry created by a clearance decision."""
    id: int
    customer_id: int
    principal: Decimal
    occurred_at: datetime
    due_date: Optional[datetime] = None
    decision_kind: Optional[str] = None
    receipt_key: Optional[str] = None


def _receipt_items(lines: Sequence[ReceiptLineSnapshot]) -> Tuple[Decimal, List[ChargeItem]]:
    items = [
        ChargeItem(
            id=ln.id,
            name=ln.name,
            qty=ln.qty,
            unit_price=ln.unit_price,
            effective_unit_price=ln.unit_price,
            line_total=ln.line_total,
        )
        for ln in lines
    ]
    return money_sum(ln.line_total for ln in lines), items


def _live_items(items: Sequence[OrderItemSnapshot]) -> Tuple[Decimal, List[ChargeItem]]:
    out = []
    for it in items:
        line_total = round2(it.line_total) if it.line_total is not None else round2(it.qty * round2(it.unit_price))
        if it.line_total is not None and it.qty:
            effective = round2(it.line_total / it.qty)
        else:
            effective = round2(it.unit_price)
        out.append(
            ChargeItem(
                id=it.id,
                name=it.name,
                qty=it.qty,
                unit_price=it.unit_price,
                effective_unit_price=effective,
                line_total=line_total,
            )
        )
    return money_sum(i.line_total for i in out), out


def _repriced_items(
    items: Sequence[OrderItemSnapshot],
    rule_rows: Iterable,
    at: datetime,
) -> Tuple[Decimal, List[ChargeItem]]:
    rules = rules_valid_at(rule_rows, at)
    lines = [
        PricedLine(
            id=it.id,
            product_id=it.product_id,
            name=it.name,
            qty=it.qty,
            unit_price=it.unit_price,
            unit_kind=it.unit_kind.value if it.unit_kind else None,
        )
        for it in items
    ]
    pricing = apply_discounts(lines, rules)
    out = []
    for ln in lines:
        eff = pricing.effective_unit_prices.get(ln.id, round2(ln.unit_price))
        out.append(
            ChargeItem(
                id=ln.id,
                name=ln.name,
                qty=ln.qty,
                unit_price=ln.unit_price,
                effective_unit_price=eff,
                line_total=round2(eff * ln.qty),
            )
        )
    return money_sum(i.line_total for i in out), out


def _default_due(occurred_at: datetime, credit_days: Optional[int]) -> datetime:
    days = settings.default_credit_days if credit_days is None else credit_days
    return occurred_at + timedelta(days=days)


def resolve_order_charge(
    order: OrderSnapshot,
    historical_pricing: bool = False,
    rule_rows: Iterable = (),
    include_items: bool = False,
    credit_days: Optional[int] = None,
) -> Charge:
    """Resolve an order's charge amount through the source priority chain."""
    occurred_at = as_utc(order.occurred_at)
    label = f"Order {order.order_code}"
    if order.channel:
        label += f" ({order.channel.value})"

    if order.origin_receipt_lines:
        amount, items = _receipt_items(order.origin_receipt_lines)
        resolved = ChargeResolution.ORIGIN_RECEIPT
        if order.origin_receipt_key:
            label += f" • {order.origin_receipt_key}"
    elif order.parent_receipt_lines:
        amount, items = _receipt_items(order.parent_receipt_lines)
        resolved = ChargeResolution.PARENT_RECEIPT
        if order.parent_receipt_key:
            label += f" • {order.parent_receipt_key}"
    elif order.items and historical_pricing:
        amount, items = _repriced_items(order.items, rule_rows, occurred_at)
        resolved = ChargeResolution.RULES_AT_TIME
    elif order.items:
        amount, items = _live_items(order.items)
        resolved = ChargeResolution.LIVE_ITEMS
    else:
        amount, items = ZERO, []
        resolved = ChargeResolution.UNRESOLVED
        logger.warning("Order %s has no resolvable line source; charging 0.00", order.id)

    return Charge(
        id=f"{ChargeSourceKind.ORDER.value}:{order.id}",
        customer_id=order.customer_id,
        occurred_at=occurred_at,
        source_kind=ChargeSourceKind.ORDER,
        amount=amount,
        label=label,
        reference_id=order.id,
        resolved_from=resolved,
        due_at=_default_due(occurred_at, credit_days),
        items=items if include_items else None,
    )


def resolve_remit_charge(
    remit: RemitSnapshot,
    include_items: bool = False,
    credit_days: Optional[int] = None,
) -> Charge:
    """A standalone consolidated remit receipt is charged at its frozen line total."""
    occurred_at = as_utc(remit.occurred_at)
    if remit.lines:
        amount, items = _receipt_items(remit.lines)
        resolved = ChargeResolution.PARENT_RECEIPT
    else:
        amount, items = ZERO, []
        resolved = ChargeResolution.UNRESOLVED
        logger.warning("Remit receipt %s has no lines; charging 0.00", remit.id)

    return Charge(
        id=f"{ChargeSourceKind.PARENT_REMIT.value}:{remit.id}",
        customer_id=remit.customer_id,
        occurred_at=occurred_at,
        source_kind=ChargeSourceKind.PARENT_REMIT,
        amount=amount,
        label=f"Remit {remit.receipt_key} • Run #{remit.run_id}",
        reference_id=remit.id,
        resolved_from=resolved,
        due_at=_default_due(occurred_at, credit_days),
        items=items if include_items else None,
    )


def resolve_ledger_entry_charge(
    entry: LedgerEntrySnapshot,
    credit_days: Optional[int] = None,
) -> Charge:
    """A/R entries are frozen at their principal."""
    occurred_at = as_utc(entry.occurred_at)
    label = f"A/R #{entry.id}"
    if entry.decision_kind:
        label += f" • {entry.decision_kind}"
    if entry.receipt_key:
        label += f" • {entry.receipt_key}"

    return Charge(
        id=f"{ChargeSourceKind.LEDGER_ENTRY.value}:{entry.id}",
        customer_id=entry.customer_id,
        occurred_at=occurred_at,
        source_kind=ChargeSourceKind.LEDGER_ENTRY,
        amount=non_negative(entry.principal),
        label=label,
        reference_id=entry.id,
        resolved_from=ChargeResolution.LEDGER_PRINCIPAL,
        due_at=as_utc(entry.due_date) if entry.due_date else _default_due(occurred_at, credit_days),
    )
