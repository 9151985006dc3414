"""
Customer A/R ledger entry model.

Created by the credit clearance workflow when a manager approves an open
balance for a customer (e.g. a rider-run shortfall moved to the customer).
"""

from sqlalchemy import Column, Integer, Numeric, ForeignKey, DateTime, Enum, String
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.billing_enums import CustomerArStatus


class CustomerAr(Base):
    """
    A/R entry.

    principal is frozen at creation; balance is maintained by the payment
    recording service and is not trusted by the ledger engine.
    """
    __tablename__ = "customer_ar"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    # Set when the entry only mirrors an order's unpaid part
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=True, index=True)

    principal = Column(Numeric(12, 2), nullable=False)
    balance = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(CustomerArStatus), default=CustomerArStatus.OPEN, nullable=False, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    # Clearance context
    decision_kind = Column(String(64), nullable=True)
    receipt_key = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<CustomerAr(id={self.id}, principal={self.principal}, status='{self.status.value}')>"
