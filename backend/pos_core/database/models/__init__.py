"""
ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from pos_core.database.models.catalog import Product, ProductModifier, ProductVariant
from pos_core.database.models.order import Order, OrderItem, OrderItemModifier
from pos_core.database.models.payment import Payment

__all__ = [
    "Order",
    "OrderItem",
    "OrderItemModifier",
    "Payment",
    "Product",
    "ProductModifier",
    "ProductVariant",
]
