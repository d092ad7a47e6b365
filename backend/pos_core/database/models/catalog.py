"""
Read-only catalog models.

Products, their variants and their modifiers are maintained by the catalog
service; the order core only reads them to take price snapshots. Every
product belongs to exactly one outlet.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_core.database.base import BaseModel, Money
from pos_core.services.orders.enums import Station


class Product(BaseModel):
    """Sellable product of one outlet."""

    __tablename__ = "products"

    outlet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Outlet that sells the product",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    base_price: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        comment="Price before variant adjustment",
    )

    station: Mapped[Optional[Station]] = mapped_column(
        SQLEnum(Station, name="kitchen_station", create_constraint=True),
        nullable=True,
        comment="Kitchen station the product is routed to",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    variants: Mapped[list["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        lazy="selectin",
    )

    modifiers: Mapped[list["ProductModifier"]] = relationship(
        "ProductModifier",
        back_populates="product",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_products_outlet_active", "outlet_id", "is_active"),
        CheckConstraint("base_price >= 0", name="ck_products_base_price_non_negative"),
        {"comment": "Outlet catalog products (read-only for the order core)"},
    )


class ProductVariant(BaseModel):
    """Variant of a product with a signed price adjustment."""

    __tablename__ = "product_variants"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    price_adjustment: Mapped[Decimal] = mapped_column(
        Money(),
        nullable=False,
        default=Decimal("0.00"),
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    product: Mapped["Product"] = relationship("Product", back_populates="variants")


class ProductModifier(BaseModel):
    """Add-on that can be attached to lines of one product."""

    __tablename__ = "product_modifiers"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    price: Mapped[Decimal] = mapped_column(Money(), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    product: Mapped["Product"] = relationship("Product", back_populates="modifiers")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_modifiers_price_non_negative"),
    )
