"""
Unit tests for deciding which payments count as customer settlements.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from backoffice.app.domain.ledger.settlement_classifier import (
    is_rider_shortage_ref,
    qualifies,
    qualifying_settlements,
)
from backoffice.app.models.billing_enums import PaymentMethod
from backoffice.app.schemas.ledger import Settlement


def make_settlement(method, amount="100.00", ref=None, pid=1):
    return Settlement(
        id=f"PAYMENT:{pid}",
        customer_id=1,
        occurred_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
        method=method,
        reference_code=ref,
        raw_amount=Decimal(amount),
        reference_id=pid,
    )


def test_cash_qualifies():
    assert qualifies(make_settlement(PaymentMethod.CASH))


def test_method_is_normalised():
    s = make_settlement(" cash ")
    assert s.method == "CASH"
    assert qualifies(s)


@pytest.mark.parametrize("ref", [
    "RIDER_SHORTAGE",
    "rider_shortage",
    "RIDER-SHORTAGE",
    "RIDER-SHORTAGE-RUN-17",
    "RIDER_SHORTAGE-042",
])
def test_internal_credit_rider_shortage_qualifies(ref):
    assert is_rider_shortage_ref(ref)
    assert qualifies(make_settlement(PaymentMethod.INTERNAL_CREDIT, ref=ref))


@pytest.mark.parametrize("ref", [None, "", "ADJUSTMENT", "SHORTAGE-RIDER"])
def test_other_internal_credit_excluded(ref):
    assert not qualifies(make_settlement(PaymentMethod.INTERNAL_CREDIT, ref=ref))


@pytest.mark.parametrize("method", [PaymentMethod.FUND_TRANSFER, PaymentMethod.GCASH, PaymentMethod.CARD, "UNKNOWN"])
def test_other_methods_excluded(method):
    assert not qualifies(make_settlement(method))


@pytest.mark.parametrize("amount", ["0", "-50"])
def test_amount_does_not_decide_qualification(amount):
    assert qualifies(make_settlement(PaymentMethod.CASH, amount=amount))
    assert qualifies(make_settlement(PaymentMethod.INTERNAL_CREDIT, amount=amount, ref="RIDER_SHORTAGE"))
    assert not qualifies(make_settlement(PaymentMethod.FUND_TRANSFER, amount=amount))


def test_qualifying_settlements_filters_and_keeps_order():
    rows = [
        make_settlement(PaymentMethod.CASH, pid=1),
        make_settlement(PaymentMethod.FUND_TRANSFER, pid=2),
        make_settlement(PaymentMethod.INTERNAL_CREDIT, ref="RIDER-SHORTAGE", pid=3),
    ]
    assert [s.reference_id for s in qualifying_settlements(rows)] == [1, 3]
