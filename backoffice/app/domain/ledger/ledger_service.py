"""
Ledger Service (Domain Logic).

Read-only entry points for customer statements and open balances.
Every call loads its own snapshot through the given session and computes a
pure projection; nothing is written back.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.config import settings
from backoffice.app.core.exceptions import CustomerNotFoundError
from backoffice.app.domain.ledger import aggregator
from backoffice.app.domain.ledger.ledger_builder import build_ledger
from backoffice.app.domain.ledger.money import Money
from backoffice.app.domain.ledger.periods import business_tz, validate_range
from backoffice.app.domain.ledger.sources import (
    customer_header,
    find_customers_with_charges,
    get_customer,
    load_customer_sources,
)
from backoffice.app.models.customer import Customer
from backoffice.app.schemas.ledger import (
    CustomerBalanceSummary,
    CustomerStatement,
    LedgerPeriodResult,
)


class LedgerService:

    @staticmethod
    async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
        """
        Fetch a customer or raise.

        Raises:
            CustomerNotFoundError: no customer with this id
        """
        customer = await get_customer(db, customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        return customer

    @staticmethod
    async def compute_ledger(
        db: AsyncSession,
        customer_id: int,
        period_start: date,
        period_end: date,
        historical_pricing: bool = False,
        include_items: bool = False,
    ) -> LedgerPeriodResult:
        """
        Statement for one customer over an inclusive local date range.

        Flow:
        1. Validate the range (before touching the database)
        2. Ensure the customer exists
        3. Load and resolve all-time charges and payments
        4. Build the period ledger

        Args:
            db: Database session
            customer_id: Customer to report on
            period_start: First local day of the period
            period_end: Last local day of the period (inclusive)
            historical_pricing: Reprice live order items with the rules valid at each order's instant
            include_items: Attach priced lines to charge entries

        Raises:
            InvalidRangeError: period_start is after period_end
            CustomerNotFoundError: unknown customer
        """
        statement = await LedgerService.compute_statement(
            db,
            customer_id,
            period_start,
            period_end,
            historical_pricing=historical_pricing,
            include_items=include_items,
        )
        return statement.ledger

    @staticmethod
    async def compute_statement(
        db: AsyncSession,
        customer_id: int,
        period_start: date,
        period_end: date,
        historical_pricing: bool = False,
        include_items: bool = False,
    ) -> CustomerStatement:
        """Period ledger plus the customer header shown on printed statements."""
        validate_range(period_start, period_end)
        customer = await LedgerService.get_customer(db, customer_id)

        sources = await load_customer_sources(
            db,
            [customer.id],
            historical_pricing=historical_pricing,
            include_items=include_items,
        )
        activity = sources[customer.id]
        ledger = build_ledger(
            customer.id,
            activity.charges,
            activity.settlements,
            period_start,
            period_end,
            tz=business_tz(),
        )
        return CustomerStatement(
            customer=customer_header(customer),
            ledger=ledger,
            historical_pricing=historical_pricing,
        )

    @staticmethod
    async def compute_current_balance(db: AsyncSession, customer_id: int) -> Money:
        """
        All-time balance with settlements capped at the amount due.

        Raises:
            CustomerNotFoundError: unknown customer
        """
        customer = await LedgerService.get_customer(db, customer_id)
        sources = await load_customer_sources(db, [customer.id])
        activity = sources[customer.id]
        return aggregator.current_balance(activity.charges, activity.settlements)

    @staticmethod
    async def list_open_balances(
        db: AsyncSession,
        name_contains: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[CustomerBalanceSummary]:
        """Customers with a positive balance, largest balance first."""
        limit = settings.open_balance_list_limit if limit is None else limit
        customers = await find_customers_with_charges(db, name_contains)
        if not customers:
            return []

        sources = await load_customer_sources(db, [c.id for c in customers])
        activities = (
            aggregator.CustomerActivity(
                customer=customer_header(c),
                charges=sources[c.id].charges,
                settlements=sources[c.id].settlements,
            )
            for c in customers
        )
        return aggregator.summarize_open_balances(activities, limit)
