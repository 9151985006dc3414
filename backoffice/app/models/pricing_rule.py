"""
Customer item price rule model.

Per-customer discount rules with a validity window. Historical statements
reprice orders with the rules that were valid at the order's instant.
"""

from sqlalchemy import Column, Integer, Numeric, DateTime, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.billing_enums import PricingMode, UnitKind


class CustomerItemPrice(Base):
    """
    Customer item price rule.

    Valid when active and starts_at <= instant <= ends_at (open ends allowed).
    """
    __tablename__ = "customer_item_prices"
    __table_args__ = (
        UniqueConstraint(
            "customer_id", "product_id", "unit_kind", "starts_at", "ends_at",
            name="uq_customer_item_price_window",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    unit_kind = Column(Enum(UnitKind), default=UnitKind.RETAIL, nullable=False)

    mode = Column(Enum(PricingMode), nullable=False)
    value = Column(Numeric(10, 2), nullable=False)

    # Validity
    active = Column(Boolean, default=True, nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<CustomerItemPrice(id={self.id}, mode='{self.mode.value}', value={self.value})>"
