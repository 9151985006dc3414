"""
Customer database model.

Owned by the customer provisioning screens; read-only for the ledger engine.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from backoffice.app.db.session import Base


class Customer(Base):
    """
    Customer model.

    A customer may carry an open balance made of orders, remit receipts
    and A/R entries, reduced by qualifying payments.
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    alias = Column(String(100), nullable=True, index=True)
    phone = Column(String(32), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        middle = f" {self.middle_name}" if self.middle_name else ""
        name = f"{self.first_name or ''}{middle} {self.last_name or ''}".strip()
        return name or f"Customer #{self.id}"

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.display_name}')>"
