"""
Order and OrderItem database models.

Written by order capture (POS, pad orders, delivery dispatch).
"""

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.billing_enums import OrderChannel, OrderStatus, UnitKind


class Order(Base):
    """
    Order model.

    Roadside orders point at the ROAD receipt they were printed on
    (origin_run_receipt_id); consolidated remits point back at the order via
    RunReceipt.parent_order_id.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_code = Column(String(32), nullable=False, unique=True, index=True)

    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=True, index=True)
    channel = Column(Enum(OrderChannel), default=OrderChannel.PICKUP, nullable=False)
    status = Column(Enum(OrderStatus), default=OrderStatus.UNPAID, nullable=False, index=True)

    origin_run_receipt_id = Column(Integer, ForeignKey('run_receipts.id'), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Order(id={self.id}, code='{self.order_code}', status='{self.status.value}')>"


class OrderItem(Base):
    """
    Order line.

    unit_price is the base price captured at order time; line_total is the
    frozen payable amount when the capture screen recorded one.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)

    name = Column(String(200), nullable=False)
    qty = Column(Numeric(10, 3), nullable=False)
    unit_kind = Column(Enum(UnitKind), default=UnitKind.RETAIL, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=True)

    def __repr__(self):
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, qty={self.qty})>"
