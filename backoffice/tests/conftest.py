"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backoffice.app.main import app
from backoffice.app.db.session import get_db, Base
from backoffice.app.core.jwt import create_access_token
from backoffice.app.models.billing_enums import (
    OrderChannel,
    OrderStatus,
    PaymentMethod,
    RunReceiptKind,
    UnitKind,
)
from backoffice.app.models.customer import Customer
from backoffice.app.models.order import Order, OrderItem
from backoffice.app.models.run_receipt import RunReceipt, RunReceiptLine
from backoffice.app.models.settlement import Payment
from backoffice.app.models.enums import UserRole

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Route every request through the in-memory database."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def auth_headers(role: UserRole = UserRole.CASHIER, user_id: int = 1) -> dict:
    token = create_access_token(data={"sub": f"{role.value.lower()}01", "user_id": user_id, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers():
    return auth_headers


@pytest.fixture
def cashier_headers():
    return auth_headers(UserRole.CASHIER)


@pytest.fixture
def rider_headers():
    return auth_headers(UserRole.RIDER, user_id=9)


class LedgerFixtures:
    """Row factory for the system-of-record tables."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def customer(self, first_name="Juan", last_name="Dela Cruz", alias=None, phone=None) -> Customer:
        row = Customer(first_name=first_name, last_name=last_name, alias=alias, phone=phone)
        self.session.add(row)
        await self.session.flush()
        return row

    async def order(
        self,
        customer: Customer,
        created_at: datetime,
        items=(),
        status=OrderStatus.UNPAID,
        channel=OrderChannel.PICKUP,
        origin_receipt: RunReceipt = None,
    ) -> Order:
        row = Order(
            order_code=f"ORD-{self._next():04d}",
            customer_id=customer.id,
            channel=channel,
            status=status,
            origin_run_receipt_id=origin_receipt.id if origin_receipt else None,
            created_at=created_at,
        )
        self.session.add(row)
        await self.session.flush()
        for product_id, qty, unit_price, line_total in items:
            self.session.add(
                OrderItem(
                    order_id=row.id,
                    product_id=product_id,
                    name=f"Product {product_id}",
                    qty=Decimal(str(qty)),
                    unit_kind=UnitKind.RETAIL,
                    unit_price=Decimal(str(unit_price)),
                    line_total=Decimal(str(line_total)) if line_total is not None else None,
                )
            )
        await self.session.flush()
        return row

    async def receipt(
        self,
        created_at: datetime,
        lines,
        kind=RunReceiptKind.PARENT,
        parent_order: Order = None,
        customer: Customer = None,
        run_id: int = 1,
    ) -> RunReceipt:
        seq = self._next()
        row = RunReceipt(
            run_id=run_id,
            kind=kind,
            receipt_key=f"{kind.value}:{seq}",
            parent_order_id=parent_order.id if parent_order else None,
            customer_id=customer.id if customer else None,
            created_at=created_at,
        )
        self.session.add(row)
        await self.session.flush()
        for product_id, qty, unit_price, line_total in lines:
            self.session.add(
                RunReceiptLine(
                    receipt_id=row.id,
                    product_id=product_id,
                    name=f"Product {product_id}",
                    qty=Decimal(str(qty)),
                    unit_price=Decimal(str(unit_price)),
                    line_total=Decimal(str(line_total)),
                )
            )
        await self.session.flush()
        return row

    async def payment(
        self,
        customer: Customer,
        amount,
        created_at: datetime,
        method=PaymentMethod.CASH,
        ref_no=None,
        note=None,
    ) -> Payment:
        row = Payment(
            customer_id=customer.id,
            method=method,
            ref_no=ref_no,
            note=note,
            amount=Decimal(str(amount)),
            created_at=created_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row


@pytest.fixture
async def ledger_data(db_session):
    return LedgerFixtures(db_session)
