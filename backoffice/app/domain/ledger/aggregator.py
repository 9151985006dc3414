"""
Open balance aggregation across customers.
"""

import logging
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence

from backoffice.app.domain.ledger.ledger_builder import chronological, fold
from backoffice.app.domain.ledger.money import ZERO, Money, money_add, money_sub
from backoffice.app.domain.ledger.periods import as_utc
from backoffice.app.domain.ledger.settlement_classifier import qualifying_settlements
from backoffice.app.schemas.ledger import (
    Charge,
    CustomerBalanceSummary,
    CustomerHeader,
    Settlement,
    TransactionKind,
)

logger = logging.getLogger(__name__)


class CustomerActivity(NamedTuple):
    """All-time charges and payments of one customer."""
    customer: CustomerHeader
    charges: Sequence[Charge]
    settlements: Sequence[Settlement]


class _Fold(NamedTuple):
    balance: Money
    applied: Money
    ordered_charges: List[Charge]


def _fold_all_time(charges: Iterable[Charge], settlements: Iterable[Settlement]) -> _Fold:
    events = chronological(charges, qualifying_settlements(settlements))
    balance = ZERO
    applied = ZERO
    for entry in fold(events):
        balance = entry.running_balance
        if entry.kind == TransactionKind.SETTLEMENT:
            applied = money_add(applied, entry.credit)
    ordered = [e for e in events if isinstance(e, Charge)]
    return _Fold(balance=balance, applied=applied, ordered_charges=ordered)


def current_balance(charges: Iterable[Charge], settlements: Iterable[Settlement]) -> Money:
    """All-time balance with settlements capped at the balance due."""
    return _fold_all_time(charges, settlements).balance


def open_charges(ordered_charges: Sequence[Charge], applied_total: Money) -> List[Charge]:
    """
    Charges still carrying a remainder after applied credit is allocated to
    them oldest first.
    """
    remaining_credit = applied_total
    still_open = []
    for charge in ordered_charges:
        covered = min(charge.amount, remaining_credit)
        remaining_credit = money_sub(remaining_credit, covered)
        if money_sub(charge.amount, covered) > 0:
            still_open.append(charge)
    return still_open


def summarize_customer(activity: CustomerActivity) -> Optional[CustomerBalanceSummary]:
    """Summary row for a customer, or None when nothing is owed."""
    folded = _fold_all_time(activity.charges, activity.settlements)
    if folded.balance <= 0:
        return None

    pending = open_charges(folded.ordered_charges, folded.applied)
    due_dates = [as_utc(c.due_at) for c in pending if c.due_at is not None]

    customer = activity.customer
    return CustomerBalanceSummary(
        customer_id=customer.id,
        name=customer.name,
        alias=customer.alias,
        phone=customer.phone,
        open_charge_count=len(pending),
        earliest_unresolved_due_date=min(due_dates) if due_dates else None,
        total_open_balance=folded.balance,
    )


def _summary_sort_key(row: CustomerBalanceSummary):
    due = row.earliest_unresolved_due_date
    due_key = (0, due) if due is not None else (1, datetime.min)
    return (-row.total_open_balance, due_key, row.customer_id)


def summarize_open_balances(activities: Iterable[CustomerActivity], limit: int) -> List[CustomerBalanceSummary]:
    """
    Customers with a positive balance, largest first.

    Ties on balance go to the earliest unresolved due date (nulls last),
    then customer id.
    """
    rows = []
    for activity in activities:
        summary = summarize_customer(activity)
        if summary is not None:
            rows.append(summary)
    rows.sort(key=_summary_sort_key)
    logger.debug("Open balances: %d customers owing, returning up to %d", len(rows), limit)
    return rows[: max(limit, 0)]
