"""
Payment database model.

Recorded by the cashier screens and the rider check-in workflow. The ledger
engine decides which payments count as customer settlements.
"""

from sqlalchemy import Column, Integer, Numeric, ForeignKey, DateTime, Enum, String
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.billing_enums import PaymentMethod


class Payment(Base):
    """
    Payment model.

    A payment references the customer directly and optionally the order or
    A/R entry it was collected against.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=True, index=True)
    customer_ar_id = Column(Integer, ForeignKey('customer_ar.id'), nullable=True, index=True)

    method = Column(Enum(PaymentMethod), nullable=False)
    ref_no = Column(String(64), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    note = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Payment(id={self.id}, method='{self.method.value}', amount={self.amount})>"
