"""
Immutable catalog snapshots handed to the pricing engine.

Snapshots are copied out of the catalog at the moment an item is priced.
Later catalog edits never reach an order that already holds a snapshot.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pos_core.services.orders.enums import Station


class ProductSnapshot(BaseModel):
    """Product as sold by one outlet."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    outlet_id: UUID
    name: str
    base_price: Decimal = Field(..., ge=0)
    station: Optional[Station] = None


class VariantSnapshot(BaseModel):
    """Size or flavour option adjusting a product's base price."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    product_id: UUID
    name: str
    price_adjustment: Decimal = Decimal("0")


class ModifierSnapshot(BaseModel):
    """Add-on charged on top of a line (extra cheese, extra shot)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    product_id: UUID
    name: str
    price: Decimal = Field(..., ge=0)


class ModifierSelection(BaseModel):
    """A modifier picked for a line together with how many were picked."""

    model_config = ConfigDict(frozen=True)

    modifier: ModifierSnapshot
    quantity: int = 1
