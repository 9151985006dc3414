"""
Customer Ledger API Endpoints.

Read-only A/R views for store managers and cashiers: open balance list,
current balance and the period statement of a customer.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.config import settings
from backoffice.app.core.guards import LEDGER_READERS, require_role
from backoffice.app.db.session import get_db
from backoffice.app.domain.ledger.ledger_service import LedgerService
from backoffice.app.domain.ledger.periods import default_period, local_today
from backoffice.app.schemas.ledger import (
    CurrentBalanceResponse,
    CustomerStatement,
    OpenBalanceListResponse,
)

router = APIRouter(prefix="/ar/customers", tags=["A/R - Customer Ledger"])


@router.get("", response_model=OpenBalanceListResponse)
async def list_customer_balances(
    q: Optional[str] = Query(None, max_length=100, description="Matches first/last name, alias or phone"),
    limit: int = Query(settings.open_balance_list_limit, ge=1, le=5000),
    current_user: dict = Depends(require_role(LEDGER_READERS)),
    db: AsyncSession = Depends(get_db)
):
    """List customers with an open balance, largest balance first."""
    term = (q or "").strip()
    rows = await LedgerService.list_open_balances(db, name_contains=term or None, limit=limit)
    return OpenBalanceListResponse(q=term, rows=rows)


@router.get("/{customer_id}/balance", response_model=CurrentBalanceResponse)
async def get_customer_balance(
    customer_id: int = Path(..., ge=1),
    current_user: dict = Depends(require_role(LEDGER_READERS)),
    db: AsyncSession = Depends(get_db)
):
    """Current all-time balance of a customer."""
    balance = await LedgerService.compute_current_balance(db, customer_id)
    return CurrentBalanceResponse(customer_id=customer_id, balance=balance)


@router.get("/{customer_id}/statement", response_model=CustomerStatement)
async def get_customer_statement(
    customer_id: int = Path(..., ge=1),
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD); defaults to the 1st of this month"),
    end: Optional[date] = Query(None, description="Last day, inclusive (YYYY-MM-DD); defaults to today"),
    historical: bool = Query(False, description="Reprice live order items with the rules valid at order time"),
    items: bool = Query(False, description="Include priced lines on charge entries"),
    current_user: dict = Depends(require_role(LEDGER_READERS)),
    db: AsyncSession = Depends(get_db)
):
    """
    Running-balance statement of a customer over a period.

    Returns 400 INVALID_RANGE when start is after end.
    """
    default_start, default_end = default_period(local_today())
    return await LedgerService.compute_statement(
        db,
        customer_id,
        start or default_start,
        end or default_end,
        historical_pricing=historical,
        include_items=items,
    )
