"""
Ledger source loading.

Reads the system-of-record tables for a set of customers with a fixed
number of bulk queries (no per-order round trips) and turns the rows into
typed charges and settlements.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

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
from backoffice.app.domain.ledger.money import to_money
from backoffice.app.domain.ledger.periods import as_utc
from backoffice.app.models.billing_enums import CHARGEABLE_ORDER_STATUSES, CustomerArStatus, RunReceiptKind
from backoffice.app.models.customer import Customer
from backoffice.app.models.ledger_entry import CustomerAr
from backoffice.app.models.order import Order, OrderItem
from backoffice.app.models.pricing_rule import CustomerItemPrice
from backoffice.app.models.run_receipt import RunReceipt, RunReceiptLine
from backoffice.app.models.settlement import Payment
from backoffice.app.schemas.ledger import Charge, CustomerHeader, Settlement

logger = logging.getLogger(__name__)


@dataclass
class CustomerSources:
    """Resolved charges and recorded payments for one customer."""
    charges: List[Charge] = field(default_factory=list)
    settlements: List[Settlement] = field(default_factory=list)


def customer_header(customer: Customer) -> CustomerHeader:
    return CustomerHeader(
        id=customer.id,
        name=customer.display_name,
        alias=customer.alias,
        phone=customer.phone,
    )


async def get_customer(db: AsyncSession, customer_id: int) -> Optional[Customer]:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    return result.scalar_one_or_none()


def _chargeable_order_customers():
    return select(Order.customer_id).where(
        Order.customer_id.is_not(None),
        Order.status.in_(CHARGEABLE_ORDER_STATUSES),
    )


def _standalone_remit_customers():
    return select(RunReceipt.customer_id).where(
        RunReceipt.kind == RunReceiptKind.PARENT,
        RunReceipt.parent_order_id.is_(None),
        RunReceipt.customer_id.is_not(None),
    )


def _ledger_entry_customers():
    return select(CustomerAr.customer_id).where(
        CustomerAr.order_id.is_(None),
        CustomerAr.status != CustomerArStatus.VOIDED,
    )


async def find_customers_with_charges(db: AsyncSession, name_contains: Optional[str] = None) -> List[Customer]:
    """
    Customers that have at least one charge source, optionally filtered by a
    case-insensitive match on first name, last name, alias or phone.
    """
    query = select(Customer).where(
        or_(
            Customer.id.in_(_chargeable_order_customers()),
            Customer.id.in_(_standalone_remit_customers()),
            Customer.id.in_(_ledger_entry_customers()),
        )
    )
    term = (name_contains or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.where(
            or_(
                Customer.first_name.ilike(pattern),
                Customer.last_name.ilike(pattern),
                Customer.alias.ilike(pattern),
                Customer.phone.ilike(pattern),
            )
        )
    result = await db.execute(query.order_by(Customer.id))
    return list(result.scalars().all())


async def _receipt_lines_by_receipt(db: AsyncSession, receipt_ids: Iterable[int]) -> Dict[int, List[ReceiptLineSnapshot]]:
    ids = set(receipt_ids)
    lines: Dict[int, List[ReceiptLineSnapshot]] = defaultdict(list)
    if not ids:
        return lines
    result = await db.execute(
        select(RunReceiptLine).where(RunReceiptLine.receipt_id.in_(ids)).order_by(RunReceiptLine.id)
    )
    for row in result.scalars().all():
        lines[row.receipt_id].append(ReceiptLineSnapshot.model_validate(row))
    return lines


async def _order_snapshots(db: AsyncSession, customer_ids: Sequence[int]) -> List[OrderSnapshot]:
    result = await db.execute(
        select(Order)
        .where(Order.customer_id.in_(customer_ids), Order.status.in_(CHARGEABLE_ORDER_STATUSES))
        .order_by(Order.id)
    )
    orders = list(result.scalars().all())
    if not orders:
        return []
    order_ids = [o.id for o in orders]

    items: Dict[int, List[OrderItemSnapshot]] = defaultdict(list)
    result = await db.execute(select(OrderItem).where(OrderItem.order_id.in_(order_ids)).order_by(OrderItem.id))
    for row in result.scalars().all():
        items[row.order_id].append(OrderItemSnapshot.model_validate(row))

    origin_ids = {o.origin_run_receipt_id for o in orders if o.origin_run_receipt_id}
    origin_keys: Dict[int, str] = {}
    if origin_ids:
        result = await db.execute(select(RunReceipt).where(RunReceipt.id.in_(origin_ids)))
        origin_keys = {r.id: r.receipt_key for r in result.scalars().all()}

    # Latest PARENT receipt per order wins when a run was re-posted
    result = await db.execute(
        select(RunReceipt)
        .where(RunReceipt.kind == RunReceiptKind.PARENT, RunReceipt.parent_order_id.in_(order_ids))
        .order_by(RunReceipt.id)
    )
    parents: Dict[int, RunReceipt] = {}
    for receipt in result.scalars().all():
        parents[receipt.parent_order_id] = receipt

    lines = await _receipt_lines_by_receipt(
        db, origin_ids | {r.id for r in parents.values()}
    )

    snapshots = []
    for order in orders:
        parent = parents.get(order.id)
        snapshots.append(
            OrderSnapshot(
                id=order.id,
                customer_id=order.customer_id,
                order_code=order.order_code,
                channel=order.channel,
                occurred_at=order.created_at,
                items=items.get(order.id, []),
                origin_receipt_key=origin_keys.get(order.origin_run_receipt_id),
                origin_receipt_lines=lines.get(order.origin_run_receipt_id, []),
                parent_receipt_key=parent.receipt_key if parent else None,
                parent_receipt_lines=lines.get(parent.id, []) if parent else [],
            )
        )
    return snapshots


async def _remit_snapshots(db: AsyncSession, customer_ids: Sequence[int]) -> List[RemitSnapshot]:
    result = await db.execute(
        select(RunReceipt)
        .where(
            RunReceipt.kind == RunReceiptKind.PARENT,
            RunReceipt.parent_order_id.is_(None),
            RunReceipt.customer_id.in_(customer_ids),
        )
        .order_by(RunReceipt.id)
    )
    remits = list(result.scalars().all())
    lines = await _receipt_lines_by_receipt(db, [r.id for r in remits])
    return [
        RemitSnapshot(
            id=r.id,
            customer_id=r.customer_id,
            run_id=r.run_id,
            receipt_key=r.receipt_key,
            occurred_at=r.created_at,
            lines=lines.get(r.id, []),
        )
        for r in remits
    ]


async def _ledger_entry_snapshots(db: AsyncSession, customer_ids: Sequence[int]) -> List[LedgerEntrySnapshot]:
    # Entries mirroring an order are already charged through the order
    result = await db.execute(
        select(CustomerAr)
        .where(
            CustomerAr.customer_id.in_(customer_ids),
            CustomerAr.order_id.is_(None),
            CustomerAr.status != CustomerArStatus.VOIDED,
        )
        .order_by(CustomerAr.id)
    )
    return [
        LedgerEntrySnapshot(
            id=row.id,
            customer_id=row.customer_id,
            principal=to_money(row.principal),
            occurred_at=row.created_at,
            due_date=row.due_date,
            decision_kind=row.decision_kind,
            receipt_key=row.receipt_key,
        )
        for row in result.scalars().all()
    ]


async def _price_rules(db: AsyncSession, customer_ids: Sequence[int]) -> Dict[int, List[CustomerItemPrice]]:
    result = await db.execute(
        select(CustomerItemPrice)
        .where(CustomerItemPrice.customer_id.in_(customer_ids), CustomerItemPrice.active.is_(True))
        .order_by(CustomerItemPrice.id)
    )
    rules: Dict[int, List[CustomerItemPrice]] = defaultdict(list)
    for row in result.scalars().all():
        rules[row.customer_id].append(row)
    return rules


def _settlement_from_payment(payment: Payment) -> Settlement:
    return Settlement(
        id=f"PAYMENT:{payment.id}",
        customer_id=payment.customer_id,
        occurred_at=as_utc(payment.created_at),
        method=payment.method,
        reference_code=payment.ref_no,
        raw_amount=to_money(payment.amount),
        note=payment.note,
        reference_id=payment.id,
    )


async def _settlements(db: AsyncSession, customer_ids: Sequence[int]) -> List[Settlement]:
    result = await db.execute(
        select(Payment).where(Payment.customer_id.in_(customer_ids)).order_by(Payment.id)
    )
    return [_settlement_from_payment(p) for p in result.scalars().all()]


async def load_customer_sources(
    db: AsyncSession,
    customer_ids: Sequence[int],
    historical_pricing: bool = False,
    include_items: bool = False,
) -> Dict[int, CustomerSources]:
    """
    Load and resolve every charge and payment of the given customers.

    Returns a mapping with an entry for each requested customer id, empty
    when the customer has no activity.
    """
    ids = list(dict.fromkeys(customer_ids))
    out: Dict[int, CustomerSources] = {cid: CustomerSources() for cid in ids}
    if not ids:
        return out

    rules = await _price_rules(db, ids) if historical_pricing else {}

    for order in await _order_snapshots(db, ids):
        out[order.customer_id].charges.append(
            resolve_order_charge(
                order,
                historical_pricing=historical_pricing,
                rule_rows=rules.get(order.customer_id, ()),
                include_items=include_items,
            )
        )
    for remit in await _remit_snapshots(db, ids):
        out[remit.customer_id].charges.append(resolve_remit_charge(remit, include_items=include_items))
    for entry in await _ledger_entry_snapshots(db, ids):
        out[entry.customer_id].charges.append(resolve_ledger_entry_charge(entry))
    for settlement in await _settlements(db, ids):
        out[settlement.customer_id].settlements.append(settlement)

    logger.debug(
        "Loaded ledger sources for %d customers (historical=%s)",
        len(ids),
        historical_pricing,
    )
    return out
