"""
Order models with line items and modifier snapshots.

This module defines the Order, OrderItem and OrderItemModifier models. Every
monetary column on an item or modifier is a snapshot taken when the line was
priced; nothing here points back to a live catalog price.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_core.database.base import Base, BaseModel, Money, UUIDMixin
from pos_core.services.orders.enums import (
    CateringStatus,
    DiscountType,
    OrderItemStatus,
    OrderStatus,
    OrderType,
    Station,
)

if TYPE_CHECKING:
    from pos_core.database.models.payment import Payment


class Order(BaseModel):
    """
    Customer order placed at one outlet.

    Attributes:
        outlet_id: Outlet owning the order; every lookup is scoped by it
        order_number: Human-readable number, unique per outlet per business day
        business_date: Day the order number sequence belongs to
        order_type: DINE_IN, TAKEAWAY, DELIVERY or CATERING
        status: Fulfillment status
        subtotal: Sum of item subtotals
        discount_amount: Order-level discount, capped at the subtotal
        tax_amount: Externally supplied tax
        total_amount: subtotal - discount_amount + tax_amount
        catering_status: Deposit/settlement state, CATERING orders only
        completed_at: Set when the order reaches COMPLETED
    """

    __tablename__ = "orders"

    outlet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        comment="Outlet owning the order",
    )

    order_number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Human-readable order number",
    )

    business_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Business day of the order number sequence",
    )

    order_type: Mapped[OrderType] = mapped_column(
        SQLEnum(OrderType, name="order_type", create_constraint=True),
        nullable=False,
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name="order_status", create_constraint=True),
        nullable=False,
        default=OrderStatus.NEW,
        comment="Current order status",
    )

    table_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        comment="Customer reference, required for catering",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing fields
    subtotal: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        comment="Sum of item subtotals",
    )

    discount_type: Mapped[Optional[DiscountType]] = mapped_column(
        SQLEnum(DiscountType, name="discount_type", create_constraint=True),
        nullable=True,
    )

    discount_value: Mapped[Optional[Decimal]] = mapped_column(Money(), nullable=True)

    discount_amount: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        default=Decimal("0.00"),
        comment="Applied order-level discount",
    )

    tax_amount: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        default=Decimal("0.00"),
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        comment="Amount due",
    )

    # Catering
    catering_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    catering_status: Mapped[Optional[CateringStatus]] = mapped_column(
        SQLEnum(CateringStatus, name="catering_status", create_constraint=True),
        nullable=True,
    )

    catering_dp_amount: Mapped[Optional[Decimal]] = mapped_column(
        Money(),
        nullable=True,
        comment="Agreed down payment for catering orders",
    )

    # Delivery
    delivery_platform: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        comment="User who created the order",
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Payment.processed_at",
    )

    __table_args__ = (
        UniqueConstraint(
            "outlet_id",
            "business_date",
            "order_number",
            name="uq_orders_outlet_day_number",
        ),
        Index("ix_orders_outlet_created", "outlet_id", "created_at"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_customer", "customer_id"),
        Index("ix_orders_catering_status", "catering_status"),
        CheckConstraint("subtotal >= 0", name="ck_orders_subtotal_non_negative"),
        CheckConstraint(
            "discount_amount >= 0",
            name="ck_orders_discount_amount_non_negative",
        ),
        CheckConstraint("tax_amount >= 0", name="ck_orders_tax_amount_non_negative"),
        CheckConstraint(
            "total_amount >= 0",
            name="ck_orders_total_amount_non_negative",
        ),
        {"comment": "Outlet orders with pricing totals and lifecycle status"},
    )

    @property
    def is_catering(self) -> bool:
        return self.order_type == OrderType.CATERING

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, order_number={self.order_number}, "
            f"status={self.status.value if self.status else None}, "
            f"total_amount={self.total_amount})>"
        )


class OrderItem(Base, UUIDMixin):
    """
    Priced line of an order.

    unit_price, the modifier snapshots and the discount pair are enough to
    re-derive subtotal after a quantity change.
    """

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id"),
        nullable=False,
    )

    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("product_variants.id"),
        nullable=True,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        comment="Base price plus variant adjustment at pricing time",
    )

    discount_type: Mapped[Optional[DiscountType]] = mapped_column(
        SQLEnum(DiscountType, name="discount_type", create_constraint=True),
        nullable=True,
    )

    discount_value: Mapped[Optional[Decimal]] = mapped_column(Money(), nullable=True)

    discount_amount: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        default=Decimal("0.00"),
    )

    subtotal: Mapped[Decimal] = mapped_column(Money(), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[OrderItemStatus] = mapped_column(
        SQLEnum(OrderItemStatus, name="order_item_status", create_constraint=True),
        nullable=False,
        default=OrderItemStatus.PENDING,
    )

    station: Mapped[Optional[Station]] = mapped_column(
        SQLEnum(Station, name="kitchen_station", create_constraint=True),
        nullable=True,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Insertion order within the order",
    )

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    modifiers: Mapped[list["OrderItemModifier"]] = relationship(
        "OrderItemModifier",
        back_populates="order_item",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_order_items_order", "order_id"),
        Index("ix_order_items_status", "status"),
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint(
            "discount_amount >= 0",
            name="ck_order_items_discount_amount_non_negative",
        ),
    )


class OrderItemModifier(Base, UUIDMixin):
    """Modifier price snapshot attached to one line item."""

    __tablename__ = "order_item_modifiers"

    order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("order_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    modifier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("product_modifiers.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    unit_price: Mapped[Decimal] = mapped_column(Money(), nullable=False)

    order_item: Mapped["OrderItem"] = relationship(
        "OrderItem", back_populates="modifiers"
    )

    __table_args__ = (
        CheckConstraint(
            "quantity > 0",
            name="ck_order_item_modifiers_quantity_positive",
        ),
    )
