"""
Ledger Builder.

Produces the running-balance statement for one customer over a period:
opening balance from everything before the period, then every in-range
charge and qualifying settlement folded in chronological order.

Settlements are capped at the balance due when they are applied, so a
payment can never push the running balance below zero. The excess is kept
on the entry as unapplied_credit.
"""

import logging
from datetime import date
from typing import Iterable, Iterator, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from backoffice.app.core.exceptions import LedgerInvariantError
from backoffice.app.domain.ledger.money import ZERO, Money, money_add, money_sub, money_sum, non_negative, round2
from backoffice.app.domain.ledger.periods import as_utc, period_bounds
from backoffice.app.domain.ledger.settlement_classifier import qualifying_settlements
from backoffice.app.schemas.ledger import (
    Charge,
    ChargeSourceKind,
    LedgerEntry,
    LedgerPeriodResult,
    Settlement,
    TransactionKind,
)

logger = logging.getLogger(__name__)

LedgerEvent = Union[Charge, Settlement]

_SOURCE_RANK = {
    ChargeSourceKind.ORDER: 0,
    ChargeSourceKind.PARENT_REMIT: 1,
    ChargeSourceKind.LEDGER_ENTRY: 2,
}


def event_sort_key(event: LedgerEvent):
    # Same instant: charges first, then by source kind, then by row id
    if isinstance(event, Charge):
        return (as_utc(event.occurred_at), 0, _SOURCE_RANK[event.source_kind], event.reference_id)
    return (as_utc(event.occurred_at), 1, 0, event.reference_id)


def chronological(charges: Iterable[Charge], settlements: Iterable[Settlement]) -> List[LedgerEvent]:
    events: List[LedgerEvent] = [*charges, *settlements]
    return sorted(events, key=event_sort_key)


def fold(events: Sequence[LedgerEvent], opening: Money = ZERO) -> Iterator[LedgerEntry]:
    """
    Fold chronologically ordered events into ledger entries.

    Charges add their amount. Settlements apply min(max(0, raw), max(0, balance)).
    """
    run = round2(opening)
    for event in events:
        if isinstance(event, Charge):
            run = money_add(run, event.amount)
            yield LedgerEntry(
                kind=TransactionKind.CHARGE,
                occurred_at=as_utc(event.occurred_at),
                label=event.label,
                debit=event.amount,
                credit=ZERO,
                running_balance=run,
                reference_id=event.id,
                items=event.items,
            )
            continue

        paid = non_negative(event.raw_amount)
        due = run if run > 0 else ZERO
        applied = min(paid, due)
        unapplied = money_sub(paid, applied)
        run = money_sub(run, applied)
        if unapplied > 0:
            logger.info(
                "Settlement %s for customer %s exceeds balance due by %s; excess left unapplied",
                event.id,
                event.customer_id,
                unapplied,
            )
        yield LedgerEntry(
            kind=TransactionKind.SETTLEMENT,
            occurred_at=as_utc(event.occurred_at),
            label=_settlement_label(event),
            debit=ZERO,
            credit=applied,
            running_balance=run,
            reference_id=event.id,
            raw_credit=event.raw_amount,
            unapplied_credit=unapplied,
        )


def _settlement_label(settlement: Settlement) -> str:
    label = f"Payment ({settlement.method})"
    if settlement.reference_code:
        label += f" • {settlement.reference_code}"
    if settlement.note:
        label += f" • {settlement.note}"
    return label


def build_ledger(
    customer_id: int,
    charges: Iterable[Charge],
    settlements: Iterable[Settlement],
    period_start: date,
    period_end: date,
    tz: Optional[ZoneInfo] = None,
) -> LedgerPeriodResult:
    """
    Build a customer's statement over an inclusive local date range.

    Args:
        customer_id: Customer the events belong to
        charges: All charges for the customer, from the beginning of time
        settlements: All payments for the customer; non-qualifying ones are dropped
        period_start: First local day of the period
        period_end: Last local day of the period (inclusive)
        tz: Business timezone override

    Raises:
        InvalidRangeError: period_start is after period_end
        LedgerInvariantError: closing balance does not match the last running balance
    """
    start_at, end_at = period_bounds(period_start, period_end, tz)

    charges = list(charges)
    credits = qualifying_settlements(settlements)

    def _before(ev: LedgerEvent) -> bool:
        return as_utc(ev.occurred_at) < start_at

    def _within(ev: LedgerEvent) -> bool:
        return start_at <= as_utc(ev.occurred_at) < end_at

    # Opening uses raw amounts with no capping
    opening = money_sub(
        money_sum(c.amount for c in charges if _before(c)),
        money_sum(non_negative(s.raw_amount) for s in credits if _before(s)),
    )

    in_range = chronological(
        (c for c in charges if _within(c)),
        (s for s in credits if _within(s)),
    )
    entries = list(fold(in_range, opening))

    total_debits = money_sum(e.debit for e in entries)
    total_credits = money_sum(e.credit for e in entries)
    total_unapplied = money_sum(e.unapplied_credit for e in entries)
    closing = money_sub(money_add(opening, total_debits), total_credits)

    last_running = entries[-1].running_balance if entries else opening
    if closing != last_running:
        logger.error(
            "Ledger identity broken for customer %s (%s..%s): closing=%s last_running=%s",
            customer_id,
            period_start,
            period_end,
            closing,
            last_running,
        )
        raise LedgerInvariantError(
            f"closing balance {closing} != last running balance {last_running} for customer {customer_id}"
        )

    return LedgerPeriodResult(
        customer_id=customer_id,
        period_start=period_start,
        period_end=period_end,
        opening_balance=opening,
        entries=entries,
        total_debits=total_debits,
        total_credits=total_credits,
        closing_balance=closing,
        total_unapplied_credit=total_unapplied,
    )
