"""
Catalog lookups used when pricing new order lines.

CatalogLookup is the read-only port the order service depends on;
SqlCatalogLookup implements it over the catalog tables. Inactive rows are
treated exactly like missing ones.
"""

import uuid
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_core.core.exceptions import InternalError, NotFoundError
from pos_core.core.logging import get_logger
from pos_core.database.models import Product, ProductModifier, ProductVariant
from pos_core.schemas.catalog import ModifierSnapshot, ProductSnapshot, VariantSnapshot

logger = get_logger(__name__)


class CatalogLookup(Protocol):
    """Read-only catalog access scoped by outlet."""

    def get_product(self, outlet_id: uuid.UUID, product_id: uuid.UUID) -> ProductSnapshot:
        ...

    def get_variant(self, variant_id: uuid.UUID) -> VariantSnapshot:
        ...

    def get_modifier(self, modifier_id: uuid.UUID) -> ModifierSnapshot:
        ...


class SqlCatalogLookup:
    """
    Catalog lookups over the shared unit-of-work session.

    Args:
        session: Session of the calling operation
    """

    def __init__(self, session: Session):
        self.session = session

    def get_product(self, outlet_id: uuid.UUID, product_id: uuid.UUID) -> ProductSnapshot:
        """
        Fetch an active product sold by the outlet.

        Raises:
            NotFoundError: If the product is missing, inactive or sold elsewhere
        """
        product = self._fetch_one(
            select(Product).where(
                Product.id == product_id,
                Product.outlet_id == outlet_id,
                Product.is_active.is_(True),
            ),
            entity="product",
        )
        if product is None:
            raise NotFoundError(
                "product not found in outlet",
                product_id=str(product_id),
                outlet_id=str(outlet_id),
            )
        return ProductSnapshot.model_validate(product)

    def get_variant(self, variant_id: uuid.UUID) -> VariantSnapshot:
        variant = self._fetch_one(
            select(ProductVariant).where(
                ProductVariant.id == variant_id,
                ProductVariant.is_active.is_(True),
            ),
            entity="variant",
        )
        if variant is None:
            raise NotFoundError("variant not found", variant_id=str(variant_id))
        return VariantSnapshot.model_validate(variant)

    def get_modifier(self, modifier_id: uuid.UUID) -> ModifierSnapshot:
        modifier = self._fetch_one(
            select(ProductModifier).where(
                ProductModifier.id == modifier_id,
                ProductModifier.is_active.is_(True),
            ),
            entity="modifier",
        )
        if modifier is None:
            raise NotFoundError("modifier not found", modifier_id=str(modifier_id))
        return ModifierSnapshot.model_validate(modifier)

    def _fetch_one(self, stmt, entity: str) -> Optional[object]:
        try:
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Catalog lookup failed",
                entity=entity,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InternalError(entity=entity) from e
