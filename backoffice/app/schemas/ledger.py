"""
Ledger schemas.

Typed variants for charges and settlements (validated once when rows are
loaded) and the read-only projections the ledger engine returns.
Money fields are Decimals quantised to cents and serialise as "123.45".
"""

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from backoffice.app.domain.ledger.money import ZERO, round2

MoneyField = Annotated[Decimal, AfterValidator(round2)]


class ChargeSourceKind(str, enum.Enum):
    """Where a charge comes from."""
    ORDER = "ORDER"
    PARENT_REMIT = "PARENT_REMIT"
    LEDGER_ENTRY = "LEDGER_ENTRY"


class ChargeResolution(str, enum.Enum):
    """Which line source produced the charge amount."""
    ORIGIN_RECEIPT = "ORIGIN_RECEIPT"
    PARENT_RECEIPT = "PARENT_RECEIPT"
    LIVE_ITEMS = "LIVE_ITEMS"
    RULES_AT_TIME = "RULES_AT_TIME"
    LEDGER_PRINCIPAL = "LEDGER_PRINCIPAL"
    UNRESOLVED = "UNRESOLVED"


class TransactionKind(str, enum.Enum):
    CHARGE = "CHARGE"
    SETTLEMENT = "SETTLEMENT"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ChargeItem(_Frozen):
    """One priced line behind a charge (audit trail)."""
    id: int
    name: str
    qty: Decimal
    unit_price: MoneyField  # Before rules
    effective_unit_price: MoneyField  # After rules; equal to unit_price when none applied
    line_total: MoneyField


class Charge(_Frozen):
    """A debit event with its resolved, frozen amount."""
    id: str
    customer_id: int
    occurred_at: datetime
    source_kind: ChargeSourceKind
    amount: MoneyField
    label: str
    reference_id: int
    resolved_from: ChargeResolution
    due_at: Optional[datetime] = None
    items: Optional[List[ChargeItem]] = None


class Settlement(_Frozen):
    """A payment event as recorded. Whether it counts is up to the classifier."""
    id: str
    customer_id: int
    occurred_at: datetime
    method: str
    reference_code: Optional[str] = None
    raw_amount: MoneyField
    note: Optional[str] = None
    reference_id: int

    @field_validator("method", mode="before")
    @classmethod
    def _method_upper(cls, value) -> str:
        raw = getattr(value, "value", value)
        return str(raw or "").strip().upper()


class LedgerEntry(_Frozen):
    """One row of the running-balance timeline."""
    kind: TransactionKind
    occurred_at: datetime
    label: str
    debit: MoneyField
    credit: MoneyField  # Credit actually applied
    running_balance: MoneyField
    reference_id: str
    raw_credit: MoneyField = ZERO  # Payment amount as recorded
    unapplied_credit: MoneyField = ZERO  # Excess over the due balance
    items: Optional[List[ChargeItem]] = None


class LedgerPeriodResult(_Frozen):
    """Statement for one customer over an inclusive date range."""
    customer_id: int
    period_start: date
    period_end: date
    opening_balance: MoneyField
    entries: List[LedgerEntry]
    total_debits: MoneyField
    total_credits: MoneyField
    closing_balance: MoneyField
    total_unapplied_credit: MoneyField = ZERO


class CustomerHeader(_Frozen):
    id: int
    name: str
    alias: Optional[str] = None
    phone: Optional[str] = None


class CustomerStatement(_Frozen):
    """Statement response: customer header plus the period ledger."""
    customer: CustomerHeader
    ledger: LedgerPeriodResult
    historical_pricing: bool = False


class CustomerBalanceSummary(_Frozen):
    """Per-customer open balance for list views."""
    customer_id: int
    name: str
    alias: Optional[str] = None
    phone: Optional[str] = None
    open_charge_count: int
    earliest_unresolved_due_date: Optional[datetime] = None
    total_open_balance: MoneyField


class CurrentBalanceResponse(_Frozen):
    customer_id: int
    balance: MoneyField


class OpenBalanceListResponse(_Frozen):
    q: str = ""
    rows: List[CustomerBalanceSummary] = Field(default_factory=list)
