"""
Pricing engine for order lines and order totals.

This module implements the PricingEngine class that turns catalog snapshots
into priced line items and aggregates line items into order totals:

    unit_price           = base_price + variant.price_adjustment
    line_before_discount = unit_price × quantity + Σ(modifier.price × modifier.quantity)
    discount_amount      = PERCENTAGE: line × value ÷ 100 | FIXED_AMOUNT: min(value, line)
    subtotal             = line_before_discount − discount_amount

    order.subtotal       = Σ item.subtotal
    order.total_amount   = order.subtotal − order.discount_amount + tax_amount

Modifier charges apply once per line and are not multiplied by the item
quantity. All arithmetic is exact; discount amounts are rounded half-up to
two places because they are persisted, and every other figure is derived
from two-place inputs by addition and integer multiplication, so the stored
totals satisfy the equations above exactly.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from pos_core.core.exceptions import NotFoundError, ValidationError
from pos_core.core.logging import get_logger
from pos_core.schemas.catalog import (
    ModifierSelection,
    ProductSnapshot,
    VariantSnapshot,
)
from pos_core.services.orders.enums import DiscountType, Station
from pos_core.services.pricing import money

logger = get_logger(__name__)


class PricedModifier(BaseModel):
    """Modifier snapshot stored with a line item."""

    model_config = ConfigDict(frozen=True)

    modifier_id: Optional[UUID] = None
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return money.multiply(self.unit_price, self.quantity)


class ItemPricing(BaseModel):
    """Price snapshot of one line item."""

    model_config = ConfigDict(frozen=True)

    unit_price: Decimal
    quantity: int
    modifiers: tuple[PricedModifier, ...] = ()
    line_before_discount: Decimal
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = None
    discount_amount: Decimal
    subtotal: Decimal
    station: Optional[Station] = None


class OrderTotals(BaseModel):
    """Order-level amounts derived from the current item set."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = None
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class PricingEngine:
    """
    Stateless pricing calculator.

    The engine never reads the catalog: callers resolve snapshots first and
    re-pricing reuses the snapshots stored on the item.
    """

    MAX_DISCOUNT_PERCENTAGE = Decimal("100")

    def validate_discount(
        self,
        discount_type: Optional[Any],
        discount_value: Optional[Any],
    ) -> tuple[Optional[DiscountType], Optional[Decimal]]:
        """
        Parse and validate a discount pair.

        A missing type means no discount; the value is then ignored. The
        value is returned at storage scale so totals recomputed from a
        stored discount match the totals computed when it was applied.

        Returns:
            Tuple of parsed discount type and exact value

        Raises:
            ValidationError: On unknown type or out-of-range value
        """
        if discount_type is None or discount_type == "":
            return None, None

        parsed_type = DiscountType.from_string(discount_type)
        value = money.to_decimal(discount_value, field="discount_value")

        if value < money.ZERO:
            raise ValidationError(
                "discount_value must be >= 0",
                discount_type=parsed_type.value,
                discount_value=str(value),
            )
        if (
            parsed_type == DiscountType.PERCENTAGE
            and value > self.MAX_DISCOUNT_PERCENTAGE
        ):
            raise ValidationError(
                "percentage discount must be between 0 and 100",
                discount_value=str(value),
            )
        return parsed_type, money.quantize(value)

    def compute_discount(
        self,
        base: Decimal,
        discount_type: Optional[DiscountType],
        discount_value: Optional[Decimal],
    ) -> Decimal:
        """
        Discount amount against a base, rounded for storage.

        Fixed discounts are capped at the base so a line or order never goes
        negative.
        """
        if discount_type is None or discount_value is None:
            return money.quantize(money.ZERO)

        if discount_type == DiscountType.PERCENTAGE:
            amount = money.percentage_of(base, discount_value)
        else:
            amount = min(discount_value, base)

        return money.quantize(min(amount, base))

    def price_item(
        self,
        product: ProductSnapshot,
        quantity: int,
        variant: Optional[VariantSnapshot] = None,
        modifiers: Sequence[ModifierSelection] = (),
        discount_type: Optional[Any] = None,
        discount_value: Optional[Any] = None,
    ) -> ItemPricing:
        """
        Price a new line item from catalog snapshots.

        Args:
            product: Product snapshot
            quantity: Number of units, must be positive
            variant: Optional variant snapshot owned by the product
            modifiers: Selected modifiers owned by the product
            discount_type: Optional PERCENTAGE or FIXED_AMOUNT
            discount_value: Discount value for the given type

        Returns:
            Immutable price snapshot

        Raises:
            ValidationError: On non-positive quantities or a bad discount
            NotFoundError: When a variant or modifier belongs to another product
        """
        self._validate_quantity(quantity)

        adjustment = money.ZERO
        if variant is not None:
            if variant.product_id != product.id:
                raise NotFoundError(
                    "variant does not belong to product",
                    variant_id=str(variant.id),
                    product_id=str(product.id),
                )
            adjustment = variant.price_adjustment

        unit_price = money.add(product.base_price, adjustment)
        if unit_price < money.ZERO:
            raise ValidationError(
                "unit price cannot be negative",
                product_id=str(product.id),
                unit_price=money.format_money(unit_price),
            )

        priced_modifiers = []
        for selection in modifiers:
            if selection.modifier.product_id != product.id:
                raise NotFoundError(
                    "modifier does not belong to product",
                    modifier_id=str(selection.modifier.id),
                    product_id=str(product.id),
                )
            if selection.quantity <= 0:
                raise ValidationError(
                    "modifier quantity must be > 0",
                    modifier_id=str(selection.modifier.id),
                    quantity=selection.quantity,
                )
            priced_modifiers.append(
                PricedModifier(
                    modifier_id=selection.modifier.id,
                    quantity=selection.quantity,
                    unit_price=money.quantize(selection.modifier.price),
                )
            )

        return self.reprice_item(
            unit_price=money.quantize(unit_price),
            quantity=quantity,
            modifiers=priced_modifiers,
            discount_type=discount_type,
            discount_value=discount_value,
            station=product.station,
        )

    def reprice_item(
        self,
        unit_price: Decimal,
        quantity: int,
        modifiers: Sequence[PricedModifier] = (),
        discount_type: Optional[Any] = None,
        discount_value: Optional[Any] = None,
        station: Optional[Station] = None,
    ) -> ItemPricing:
        """
        Price a line from stored snapshots.

        Used both for new lines and for quantity changes, where the stored
        unit price, modifier snapshots and discount are reused verbatim.
        """
        self._validate_quantity(quantity)
        parsed_type, parsed_value = self.validate_discount(discount_type, discount_value)

        line_before_discount = money.add(
            money.multiply(unit_price, quantity),
            *(modifier.line_total for modifier in modifiers),
        )
        discount_amount = self.compute_discount(
            line_before_discount, parsed_type, parsed_value
        )
        subtotal = money.subtract(line_before_discount, discount_amount)

        logger.debug(
            "Line item priced",
            unit_price=money.format_money(unit_price),
            quantity=quantity,
            modifiers=len(modifiers),
            discount_amount=money.format_money(discount_amount),
            subtotal=money.format_money(subtotal),
        )

        return ItemPricing(
            unit_price=money.quantize(unit_price),
            quantity=quantity,
            modifiers=tuple(modifiers),
            line_before_discount=money.quantize(line_before_discount),
            discount_type=parsed_type,
            discount_value=parsed_value,
            discount_amount=discount_amount,
            subtotal=money.quantize(subtotal),
            station=station,
        )

    def compute_order_totals(
        self,
        item_subtotals: Sequence[Decimal],
        discount_type: Optional[Any] = None,
        discount_value: Optional[Any] = None,
        tax_amount: Optional[Decimal] = None,
    ) -> OrderTotals:
        """
        Aggregate line subtotals into order totals.

        Deterministic over its inputs: recomputing from the same item set
        yields identical totals.
        """
        parsed_type, parsed_value = self.validate_discount(discount_type, discount_value)
        tax = money.quantize(tax_amount)
        if tax < money.ZERO:
            raise ValidationError("tax_amount must be >= 0", tax_amount=str(tax))

        subtotal = money.quantize(money.add(*item_subtotals))
        discount_amount = self.compute_discount(subtotal, parsed_type, parsed_value)
        total_amount = money.add(money.subtract(subtotal, discount_amount), tax)

        return OrderTotals(
            subtotal=subtotal,
            discount_type=parsed_type,
            discount_value=parsed_value,
            discount_amount=discount_amount,
            tax_amount=tax,
            total_amount=money.quantize(total_amount),
        )

    @staticmethod
    def _validate_quantity(quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be > 0", quantity=quantity)


def get_pricing_engine() -> PricingEngine:
    return PricingEngine()
