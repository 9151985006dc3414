"""
Settlement Classifier.

Decides which payments reduce a customer's balance:
- CASH always counts
- INTERNAL_CREDIT counts only as the rider-shortage bridge, i.e. when the
  business already absorbed the rider's shortfall for this customer

Everything else (fund transfers, other internal credits) is left out of the
ledger entirely rather than shown as a zero row. The amount plays no part:
a zero or negative CASH payment still qualifies and applies nothing.
"""

from typing import Any, Iterable, List

from backoffice.app.models.billing_enums import PaymentMethod
from backoffice.app.schemas.ledger import Settlement

RIDER_SHORTAGE_REF = "RIDER_SHORTAGE"
RIDER_SHORTAGE_PREFIXES = ("RIDER-SHORTAGE", "RIDER_SHORTAGE")


def is_rider_shortage_ref(ref: Any) -> bool:
    code = str(ref or "").strip().upper()
    return code == RIDER_SHORTAGE_REF or code.startswith(RIDER_SHORTAGE_PREFIXES)


def qualifies(settlement: Settlement) -> bool:
    """True when the payment counts toward reducing the customer's balance."""
    if settlement.method == PaymentMethod.CASH.value:
        return True
    if settlement.method == PaymentMethod.INTERNAL_CREDIT.value:
        return is_rider_shortage_ref(settlement.reference_code)
    return False


def qualifying_settlements(settlements: Iterable[Settlement]) -> List[Settlement]:
    return [s for s in settlements if qualifies(s)]
