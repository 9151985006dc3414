"""
Delivery run receipt models.

Receipts freeze what the rider actually handed over. Their lines are
authoritative and never recomputed.
"""

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.billing_enums import RunReceiptKind


class RunReceipt(Base):
    """
    Run receipt.

    ROAD receipts are printed roadside and become the origin of an order.
    PARENT receipts consolidate a rider's end-of-run remit; they either cover
    an existing order (parent_order_id) or stand alone for a customer.
    """
    __tablename__ = "run_receipts"
    __table_args__ = (
        UniqueConstraint("run_id", "receipt_key", name="uq_run_receipt_key"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    run_id = Column(Integer, nullable=False, index=True)
    kind = Column(Enum(RunReceiptKind), default=RunReceiptKind.ROAD, nullable=False, index=True)
    receipt_key = Column(String(64), nullable=False)

    # No FK: orders already reference run_receipts (origin_run_receipt_id)
    parent_order_id = Column(Integer, nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=True, index=True)

    cash_collected = Column(Numeric(12, 2), nullable=False, default=0)
    note = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RunReceipt(id={self.id}, kind='{self.kind.value}', key='{self.receipt_key}')>"


class RunReceiptLine(Base):
    """Frozen receipt line."""
    __tablename__ = "run_receipt_lines"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    receipt_id = Column(Integer, ForeignKey('run_receipts.id'), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)

    name = Column(String(200), nullable=False)
    qty = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)

    def __repr__(self):
        return f"<RunReceiptLine(id={self.id}, receipt_id={self.receipt_id}, total={self.line_total})>"
