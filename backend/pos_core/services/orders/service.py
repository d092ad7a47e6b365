"""
Order service orchestrating pricing, mutation and lifecycle operations.

This module implements the OrderService class. Each public method is one
unit of work on the injected session: preconditions are checked before any
write, all writes of the operation commit together, and any failure rolls
the whole operation back. Item mutations take the order row lock first so
concurrent payments and edits on the same order serialize; status changes
use a compare-and-swap on the status that was read.
"""

import uuid
from datetime import date
from typing import Any, Optional, Union

from sqlalchemy.orm import Session

from pos_core.core.config import Settings, get_settings
from pos_core.core.exceptions import ConflictError, ValidationError
from pos_core.core.logging import get_logger, log_performance
from pos_core.database.connection import transaction
from pos_core.database.models import Order, OrderItem
from pos_core.schemas.catalog import ModifierSelection
from pos_core.schemas.orders import (
    OrderCreateRequest,
    OrderItemRequest,
    OrderItemUpdateRequest,
    parse_command,
)
from pos_core.services.catalog.lookup import CatalogLookup, SqlCatalogLookup
from pos_core.services.orders.catering import CateringLifecycle
from pos_core.services.orders.enums import (
    OrderItemStatus,
    OrderStatus,
    OrderType,
)
from pos_core.services.orders.repository import (
    DuplicateOrderNumberError,
    OrderRepository,
)
from pos_core.services.orders.state_machine import ItemStateMachine, OrderStateMachine
from pos_core.services.payments.repository import PaymentRepository
from pos_core.services.pricing import money
from pos_core.services.pricing.pricing_engine import (
    ItemPricing,
    OrderTotals,
    PricedModifier,
    PricingEngine,
)

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class OrderService:
    """
    Order operations for one outlet-scoped caller.

    Attributes:
        repository: Order repository sharing the session
        payment_repository: Payment sums used to guard total reductions
        catalog: Catalog lookups used to take price snapshots
        pricing_engine: Line and order pricing
        state_machine: Order lifecycle transitions
        item_state_machine: Item kitchen transitions
    """

    def __init__(
        self,
        session: Session,
        catalog: Optional[CatalogLookup] = None,
        pricing_engine: Optional[PricingEngine] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repository = OrderRepository(session)
        self.payment_repository = PaymentRepository(session)
        self.catalog = catalog or SqlCatalogLookup(session)
        self.pricing_engine = pricing_engine or PricingEngine()
        self.catering = CateringLifecycle()
        self.state_machine = OrderStateMachine(session, self.repository, self.catering)
        self.item_state_machine = ItemStateMachine(session, self.repository)

    # ------------------------------------------------------------------
    # Creation and reads
    # ------------------------------------------------------------------

    def create_order(
        self,
        request: Union[OrderCreateRequest, dict[str, Any]],
        business_date: Optional[date] = None,
    ) -> Order:
        """
        Price a cart and open a NEW order.

        Args:
            request: Order header and at least one item
            business_date: Day the order number belongs to, today by default

        Returns:
            Persisted order with items

        Raises:
            ValidationError: On bad order type, empty cart, missing catering
                details, bad quantities or discounts
            NotFoundError: On unknown product, variant or modifier
            ConflictError: If no order number could be allocated
        """
        command = parse_command(OrderCreateRequest, request)
        order_type = OrderType.from_string(command.order_type)

        if not command.items:
            raise ValidationError("items are required", outlet_id=str(command.outlet_id))

        if order_type == OrderType.CATERING:
            if command.catering_date is None:
                raise ValidationError("catering_date is required for CATERING orders")
            if command.customer_id is None:
                raise ValidationError("customer_id is required for CATERING orders")
            if (
                command.catering_dp_amount is not None
                and command.catering_dp_amount < money.ZERO
            ):
                raise ValidationError("catering_dp_amount must be >= 0")

        discount_type, discount_value = self.pricing_engine.validate_discount(
            command.discount_type, command.discount_value
        )
        business_date = business_date or date.today()

        with log_performance(logger, "create_order", outlet_id=str(command.outlet_id)):
            with transaction(self.session, "create_order", outlet_id=str(command.outlet_id)):
                priced_items = [
                    self._price_item_request(command.outlet_id, item)
                    for item in command.items
                ]
                totals = self.pricing_engine.compute_order_totals(
                    [pricing.subtotal for pricing, _ in priced_items],
                    discount_type,
                    discount_value,
                    command.tax_amount,
                )

                attempts = self.settings.order_number_max_retries
                for attempt in range(1, attempts + 1):
                    order_number = self.repository.next_order_number(
                        command.outlet_id,
                        business_date,
                        self.settings.order_number_prefix,
                    )
                    order = self._build_order(
                        command, order_type, order_number, business_date, totals
                    )
                    order.items = [
                        self.repository.build_item(
                            pricing,
                            product_id=item.product_id,
                            variant_id=item.variant_id,
                            notes=item.notes,
                            position=position,
                        )
                        for position, (pricing, item) in enumerate(priced_items)
                    ]
                    try:
                        self.repository.insert_order(order)
                        break
                    except DuplicateOrderNumberError:
                        self.session.rollback()
                        logger.warning(
                            "Order number taken, retrying",
                            order_number=order_number,
                            attempt=attempt,
                            max_attempts=attempts,
                        )
                else:
                    raise ConflictError(
                        "could not allocate an order number, please retry",
                        outlet_id=str(command.outlet_id),
                        attempts=attempts,
                    )

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            order_type=order.order_type.value,
            items=len(order.items),
            total_amount=money.format_money(order.total_amount),
        )
        return order

    def get_order(self, outlet_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        """Fetch an order with items and modifier snapshots."""
        return self.repository.get_order(outlet_id, order_id)

    def list_orders(
        self,
        outlet_id: uuid.UUID,
        status: Union[OrderStatus, str, None] = None,
        order_type: Union[OrderType, str, None] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        List an outlet's orders, newest first.

        A non-positive limit falls back to the default page size and limits
        above the maximum are capped; a negative offset starts at the top.

        Returns:
            Dictionary containing orders and pagination info

        Raises:
            ValidationError: On an unknown status or order type
        """
        status_filter = OrderStatus.from_string(status) if status else None
        type_filter = OrderType.from_string(order_type) if order_type else None
        limit = min(limit if limit > 0 else DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        offset = max(offset, 0)

        orders, total_count = self.repository.list_orders(
            outlet_id,
            status=status_filter,
            order_type=type_filter,
            start_date=start_date,
            end_date=end_date,
            offset=offset,
            limit=limit,
        )
        return {
            "orders": list(orders),
            "total_count": total_count,
            "limit": limit,
            "offset": offset,
        }

    # ------------------------------------------------------------------
    # Item mutations
    # ------------------------------------------------------------------

    def add_item(
        self,
        outlet_id: uuid.UUID,
        order_id: uuid.UUID,
        request: Union[OrderItemRequest, dict[str, Any]],
    ) -> OrderItem:
        """
        Price and append a line to a NEW order.

        Raises:
            ValidationError: On bad quantities or discount
            NotFoundError: On unknown order, product, variant or modifier
            ConflictError: If the order is no longer NEW
        """
        command = parse_command(OrderItemRequest, request)
        self._validate_quantities(command)

        with transaction(self.session, "add_item", order_id=str(order_id)):
            order = self.repository.get_order_for_update(outlet_id, order_id)
            self._require_new(order, "can only add items to NEW orders")

            pricing, _ = self._price_item_request(outlet_id, command)
            position = max((item.position for item in order.items), default=-1) + 1
            item = self.repository.build_item(
                pricing,
                product_id=command.product_id,
                variant_id=command.variant_id,
                notes=command.notes,
                position=position,
            )
            self.repository.add_item(order, item)
            self._recalculate_totals(order)

        logger.info(
            "Order item added",
            order_id=str(order_id),
            item_id=str(item.id),
            subtotal=money.format_money(item.subtotal),
            total_amount=money.format_money(order.total_amount),
        )
        return item

    def update_item(
        self,
        outlet_id: uuid.UUID,
        order_id: uuid.UUID,
        item_id: uuid.UUID,
        request: Union[OrderItemUpdateRequest, dict[str, Any]],
    ) -> OrderItem:
        """
        Change the quantity and notes of a line on a NEW order.

        The subtotal is re-derived from the stored unit price, modifier
        snapshots and discount; the catalog is not consulted.
        """
        command = parse_command(OrderItemUpdateRequest, request)
        if command.quantity <= 0:
            raise ValidationError("quantity must be > 0", quantity=command.quantity)

        with transaction(self.session, "update_item", order_id=str(order_id)):
            order = self.repository.get_order_for_update(outlet_id, order_id)
            self._require_new(order, "can only update items on NEW orders")
            item = self.repository.get_item(order, item_id)

            pricing = self.pricing_engine.reprice_item(
                unit_price=item.unit_price,
                quantity=command.quantity,
                modifiers=[
                    PricedModifier(
                        modifier_id=modifier.modifier_id,
                        quantity=modifier.quantity,
                        unit_price=modifier.unit_price,
                    )
                    for modifier in item.modifiers
                ],
                discount_type=item.discount_type,
                discount_value=item.discount_value,
                station=item.station,
            )
            if command.notes is not None:
                item.notes = command.notes
            self.repository.apply_item_pricing(item, pricing)
            self._recalculate_totals(order)
            self._require_total_covers_payments(order)

        logger.info(
            "Order item updated",
            order_id=str(order_id),
            item_id=str(item_id),
            quantity=item.quantity,
            total_amount=money.format_money(order.total_amount),
        )
        return item

    def remove_item(
        self,
        outlet_id: uuid.UUID,
        order_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> Order:
        """
        Remove a line from a NEW order.

        Raises:
            ConflictError: If the order is not NEW, this is its only item or
                the new total would fall below the amount already paid
        """
        with transaction(self.session, "remove_item", order_id=str(order_id)):
            order = self.repository.get_order_for_update(outlet_id, order_id)
            self._require_new(order, "can only remove items from NEW orders")
            item = self.repository.get_item(order, item_id)

            if self.repository.count_items(order.id) <= 1:
                raise ConflictError(
                    "cannot remove the last item from an order",
                    order_id=str(order_id),
                    item_id=str(item_id),
                )

            self.repository.delete_item(order, item)
            self._recalculate_totals(order)
            self._require_total_covers_payments(order)

        logger.info(
            "Order item removed",
            order_id=str(order_id),
            item_id=str(item_id),
            total_amount=money.format_money(order.total_amount),
        )
        return order

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_status(
        self,
        outlet_id: uuid.UUID,
        order_id: uuid.UUID,
        new_status: Union[OrderStatus, str],
    ) -> Order:
        """
        Move an order along its lifecycle.

        Raises:
            ValidationError: On an unknown status
            ConflictError: On an illegal transition or a concurrent change
        """
        target = OrderStatus.from_string(new_status)

        with transaction(self.session, "update_status", order_id=str(order_id)):
            order = self.repository.get_order(outlet_id, order_id)
            self.state_machine.apply_transition(order, target)

        return order

    def cancel_order(self, outlet_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        """
        Cancel an order that is not completed or already cancelled.

        A catering booking on the order is cancelled with it.
        """
        with transaction(self.session, "cancel_order", order_id=str(order_id)):
            order = self.repository.get_order(outlet_id, order_id)
            self.state_machine.cancel(order)

        logger.info("Order cancelled", order_id=str(order_id))
        return order

    def update_item_status(
        self,
        outlet_id: uuid.UUID,
        order_id: uuid.UUID,
        item_id: uuid.UUID,
        new_status: Union[OrderItemStatus, str],
    ) -> OrderItem:
        """
        Move a line item through the kitchen.

        Raises:
            ConflictError: If the order is completed or cancelled, or the
                item transition is illegal
        """
        target = OrderItemStatus.from_string(new_status)

        with transaction(self.session, "update_item_status", order_id=str(order_id)):
            order = self.repository.get_order_for_update(outlet_id, order_id)
            item = self.repository.get_item(order, item_id)
            self.item_state_machine.apply_transition(order, item, target)

        return item

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_order(
        self,
        command: OrderCreateRequest,
        order_type: OrderType,
        order_number: str,
        business_date: date,
        totals: OrderTotals,
    ) -> Order:
        is_catering = order_type == OrderType.CATERING
        is_delivery = order_type == OrderType.DELIVERY

        order = Order(
            id=uuid.uuid4(),
            outlet_id=command.outlet_id,
            order_number=order_number,
            business_date=business_date,
            order_type=order_type,
            status=OrderStatus.NEW,
            table_number=command.table_number,
            customer_id=command.customer_id,
            notes=command.notes,
            subtotal=totals.subtotal,
            discount_type=totals.discount_type,
            discount_value=totals.discount_value,
            discount_amount=totals.discount_amount,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            catering_date=command.catering_date if is_catering else None,
            catering_dp_amount=(
                money.quantize(command.catering_dp_amount)
                if is_catering and command.catering_dp_amount is not None
                else None
            ),
            delivery_platform=command.delivery_platform if is_delivery else None,
            delivery_address=command.delivery_address if is_delivery else None,
            created_by=command.created_by,
        )
        order.catering_status = self.catering.initial_status(order)
        return order

    def _price_item_request(
        self,
        outlet_id: uuid.UUID,
        command: OrderItemRequest,
    ) -> tuple[ItemPricing, OrderItemRequest]:
        self._validate_quantities(command)

        product = self.catalog.get_product(outlet_id, command.product_id)
        variant = (
            self.catalog.get_variant(command.variant_id)
            if command.variant_id is not None
            else None
        )
        selections = [
            ModifierSelection(
                modifier=self.catalog.get_modifier(modifier.modifier_id),
                quantity=modifier.quantity,
            )
            for modifier in command.modifiers
        ]

        pricing = self.pricing_engine.price_item(
            product,
            quantity=command.quantity,
            variant=variant,
            modifiers=selections,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
        )
        return pricing, command

    def _validate_quantities(self, command: OrderItemRequest) -> None:
        if command.quantity <= 0:
            raise ValidationError(
                "quantity must be > 0",
                product_id=str(command.product_id),
                quantity=command.quantity,
            )
        for modifier in command.modifiers:
            if modifier.quantity <= 0:
                raise ValidationError(
                    "modifier quantity must be > 0",
                    modifier_id=str(modifier.modifier_id),
                    quantity=modifier.quantity,
                )

    def _require_new(self, order: Order, message: str) -> None:
        if not order.status.accepts_item_changes():
            raise ConflictError(
                message,
                order_id=str(order.id),
                status=order.status.value,
            )

    def _require_total_covers_payments(self, order: Order) -> None:
        total_paid = self.payment_repository.sum_completed_payments(order.id)
        if order.total_amount < total_paid:
            raise ConflictError(
                "order total cannot drop below amount already paid",
                order_id=str(order.id),
                total_amount=money.format_money(order.total_amount),
                total_paid=money.format_money(total_paid),
            )

    def _recalculate_totals(self, order: Order) -> Order:
        """Rebuild order totals from the full current item set."""
        totals = self.pricing_engine.compute_order_totals(
            [item.subtotal for item in order.items],
            order.discount_type,
            order.discount_value,
            order.tax_amount,
        )
        return self.repository.apply_totals(order, totals)


def get_order_service(session: Session) -> OrderService:
    return OrderService(session)
