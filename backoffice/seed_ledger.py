"""
Database seeding script for a demo customer ledger.

Creates a few customers with orders, a roadside receipt, a consolidated
remit, an A/R entry and payments, then prints a cashier token for the
/v1/ar endpoints. Run this against a local database only.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from backoffice.app.core.jwt import create_access_token
from backoffice.app.db.session import AsyncSessionLocal, Base, engine
from backoffice.app.models.billing_enums import (
    OrderChannel,
    OrderStatus,
    PaymentMethod,
    RunReceiptKind,
    UnitKind,
)
from backoffice.app.models.customer import Customer
from backoffice.app.models.ledger_entry import CustomerAr
from backoffice.app.models.order import Order, OrderItem
from backoffice.app.models.run_receipt import RunReceipt, RunReceiptLine
from backoffice.app.models.settlement import Payment
from backoffice.app.models.enums import UserRole


async def seed_ledger():
    """
    Seed demo ledger data.

    Creates:
    - Ana: a delivery order charged from its roadside receipt, part paid in cash
    - Ben: a pickup order plus a rider-shortage A/R entry bridged by internal credit
    - Carla: a standalone remit receipt, fully paid
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting ledger seeding...")

        existing = await db.execute(select(Customer).where(Customer.alias == "demo-ana"))
        if existing.scalar_one_or_none():
            print("ℹ️  Demo customers already exist, skipping seeding")
            return

        now = datetime.now(timezone.utc)
        ana = Customer(first_name="Ana", last_name="Reyes", alias="demo-ana", phone="09171234567")
        ben = Customer(first_name="Ben", last_name="Santos", alias="demo-ben")
        carla = Customer(first_name="Carla", last_name="Lim", alias="demo-carla")
        db.add_all([ana, ben, carla])
        await db.flush()

        # Ana: roadside receipt is the frozen source of truth for the order
        road = RunReceipt(run_id=1, kind=RunReceiptKind.ROAD, receipt_key="ROAD:1", created_at=now - timedelta(days=6))
        db.add(road)
        await db.flush()
        db.add(RunReceiptLine(receipt_id=road.id, product_id=1, name="LPG 11kg", qty=Decimal("1"),
                              unit_price=Decimal("950.00"), line_total=Decimal("900.00")))
        ana_order = Order(order_code="DEMO-0001", customer_id=ana.id, channel=OrderChannel.DELIVERY,
                          status=OrderStatus.PARTIALLY_PAID, origin_run_receipt_id=road.id,
                          created_at=now - timedelta(days=6))
        db.add(ana_order)
        await db.flush()
        db.add(OrderItem(order_id=ana_order.id, product_id=1, name="LPG 11kg", qty=Decimal("1"),
                         unit_kind=UnitKind.RETAIL, unit_price=Decimal("950.00")))
        db.add(Payment(customer_id=ana.id, order_id=ana_order.id, method=PaymentMethod.CASH,
                       amount=Decimal("500.00"), created_at=now - timedelta(days=5)))
        print("✅ Created Ana (balance 400.00)")

        # Ben: pickup order and a shortage the business already absorbed
        ben_order = Order(order_code="DEMO-0002", customer_id=ben.id, channel=OrderChannel.PICKUP,
                          status=OrderStatus.UNPAID, created_at=now - timedelta(days=3))
        db.add(ben_order)
        await db.flush()
        db.add(OrderItem(order_id=ben_order.id, product_id=2, name="Rice 25kg", qty=Decimal("2"),
                         unit_kind=UnitKind.PACK, unit_price=Decimal("1250.00")))
        ar = CustomerAr(customer_id=ben.id, principal=Decimal("120.00"), balance=Decimal("120.00"),
                        decision_kind="RIDER_SHORTAGE", receipt_key="ROAD:7",
                        due_date=now + timedelta(days=14), created_at=now - timedelta(days=2))
        db.add(ar)
        await db.flush()
        db.add(Payment(customer_id=ben.id, customer_ar_id=ar.id, method=PaymentMethod.INTERNAL_CREDIT,
                       ref_no="RIDER-SHORTAGE-7", amount=Decimal("120.00"), created_at=now - timedelta(days=1)))
        print("✅ Created Ben (balance 2500.00)")

        # Carla: standalone consolidated remit, settled
        remit = RunReceipt(run_id=2, kind=RunReceiptKind.PARENT, receipt_key="PARENT:C1",
                           customer_id=carla.id, created_at=now - timedelta(days=4))
        db.add(remit)
        await db.flush()
        db.add(RunReceiptLine(receipt_id=remit.id, product_id=3, name="Water 5gal", qty=Decimal("4"),
                              unit_price=Decimal("35.00"), line_total=Decimal("140.00")))
        db.add(Payment(customer_id=carla.id, method=PaymentMethod.CASH, amount=Decimal("140.00"),
                       created_at=now - timedelta(days=4) + timedelta(hours=2)))
        print("✅ Created Carla (balance 0.00)")

        await db.commit()

    token = create_access_token(
        data={"sub": "cashier01", "user_id": 1, "role": UserRole.CASHIER.value},
        expires_delta=timedelta(hours=8),
    )
    print("\n🎉 Ledger seeding completed successfully!")
    print("\nTry:")
    print("  GET /v1/ar/customers")
    print(f"  Authorization: Bearer {token}")


if __name__ == "__main__":
    asyncio.run(seed_ledger())
