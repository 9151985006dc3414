"""
Billing enumerations for orders, remits, A/R entries and payments.
"""

import enum


class OrderChannel(str, enum.Enum):
    """How the order reached the customer."""
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"
    WALK_IN = "WALK_IN"


class OrderStatus(str, enum.Enum):
    """Order status enumeration."""
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    VOIDED = "VOIDED"


# Orders that represent an amount owed by the customer
CHARGEABLE_ORDER_STATUSES = (
    OrderStatus.UNPAID,
    OrderStatus.PARTIALLY_PAID,
    OrderStatus.PAID,
)


class UnitKind(str, enum.Enum):
    """Unit an item was sold in."""
    RETAIL = "RETAIL"
    PACK = "PACK"


class RunReceiptKind(str, enum.Enum):
    """Delivery run receipt kind."""
    ROAD = "ROAD"  # Printed roadside at dispatch, origin of a roadside order
    PARENT = "PARENT"  # Rider's consolidated end-of-run remit receipt


class CustomerArStatus(str, enum.Enum):
    """A/R ledger entry status."""
    OPEN = "OPEN"
    PARTIALLY_SETTLED = "PARTIALLY_SETTLED"
    SETTLED = "SETTLED"
    VOIDED = "VOIDED"


class PricingMode(str, enum.Enum):
    """Customer item price rule mode."""
    FIXED_PRICE = "FIXED_PRICE"  # Unit price replaced by value
    PERCENT_DISCOUNT = "PERCENT_DISCOUNT"  # value percent off
    FIXED_DISCOUNT = "FIXED_DISCOUNT"  # value off the base unit price


class PaymentMethod(str, enum.Enum):
    """Payment method enumeration."""
    CASH = "CASH"
    INTERNAL_CREDIT = "INTERNAL_CREDIT"  # Internal adjustment, not drawer money
    FUND_TRANSFER = "FUND_TRANSFER"
    GCASH = "GCASH"
    CARD = "CARD"
    OTHER = "OTHER"
