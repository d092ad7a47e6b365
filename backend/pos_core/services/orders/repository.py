"""
Order data access repository.

This module implements the OrderRepository class over one unit-of-work
session. It never commits: the calling service decides when the unit of
work ends. Reads are always scoped by outlet, and every mutation of an
existing order starts from ``get_order_for_update`` which takes the order
row lock for the rest of the transaction.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from pos_core.core.exceptions import ConflictError, InternalError, NotFoundError
from pos_core.core.logging import get_logger
from pos_core.database.models import Order, OrderItem, OrderItemModifier
from pos_core.services.orders.enums import (
    CateringStatus,
    OrderItemStatus,
    OrderStatus,
    OrderType,
)
from pos_core.services.pricing.pricing_engine import ItemPricing, OrderTotals

logger = get_logger(__name__)

ORDER_NUMBER_CONSTRAINT = "uq_orders_outlet_day_number"


class DuplicateOrderNumberError(ConflictError):
    """Raised when another writer took the same order number first."""

    pass


class OrderRepository:
    """
    Repository for order data access operations.

    Args:
        session: Session of the calling unit of work
    """

    def __init__(self, session: Session):
        self.session = session

    def _order_query(self, outlet_id: uuid.UUID, order_id: uuid.UUID):
        return select(Order).where(Order.id == order_id, Order.outlet_id == outlet_id)

    def get_order(self, outlet_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        """
        Fetch an order with its items and modifiers.

        Raises:
            NotFoundError: If the order does not exist in the outlet
        """
        order = self._execute_scalar(
            self._order_query(outlet_id, order_id).execution_options(
                populate_existing=True
            ),
            "get_order",
            order_id=order_id,
        )
        if order is None:
            raise NotFoundError(
                "order not found",
                order_id=str(order_id),
                outlet_id=str(outlet_id),
            )
        return order

    def get_order_for_update(self, outlet_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        """
        Fetch an order and lock its row until the transaction ends.

        Concurrent writers on the same order queue behind the lock; rows
        referencing the order (payments, items) can still be inserted by
        the lock holder. Identity-map copies are overwritten with the
        locked state.

        Raises:
            NotFoundError: If the order does not exist in the outlet
        """
        stmt = (
            self._order_query(outlet_id, order_id)
            .with_for_update(key_share=True)
            .execution_options(populate_existing=True)
        )
        order = self._execute_scalar(stmt, "get_order_for_update", order_id=order_id)
        if order is None:
            raise NotFoundError(
                "order not found",
                order_id=str(order_id),
                outlet_id=str(outlet_id),
            )
        logger.debug("Order row locked", order_id=str(order_id))
        return order

    def list_orders(
        self,
        outlet_id: uuid.UUID,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Order], int]:
        """
        Page through an outlet's orders, newest first.

        Args:
            outlet_id: Outlet the orders belong to
            status: Optional status filter
            order_type: Optional order type filter
            start_date: First business date included
            end_date: Last business date included
            offset: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (orders, total_count)
        """
        conditions = [Order.outlet_id == outlet_id]
        if status is not None:
            conditions.append(Order.status == status)
        if order_type is not None:
            conditions.append(Order.order_type == order_type)
        if start_date is not None:
            conditions.append(Order.business_date >= start_date)
        if end_date is not None:
            conditions.append(Order.business_date <= end_date)

        stmt = (
            select(Order)
            .where(and_(*conditions))
            .order_by(Order.created_at.desc(), Order.order_number.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(Order).where(and_(*conditions))

        try:
            orders = self.session.execute(stmt).scalars().all()
            total_count = self.session.execute(count_stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list orders",
                outlet_id=str(outlet_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InternalError(operation="list_orders", outlet_id=str(outlet_id)) from e

        logger.debug(
            "Orders listed",
            outlet_id=str(outlet_id),
            count=len(orders),
            total_count=total_count,
        )
        return orders, total_count

    def next_order_number(
        self,
        outlet_id: uuid.UUID,
        business_date: date,
        prefix: str,
    ) -> str:
        """
        Next free order number for the outlet's business day.

        Numbers look like ``KWR-001``; the sequence restarts every day. Two
        writers can compute the same number, the unique constraint decides.
        """
        stmt = select(Order.order_number).where(
            Order.outlet_id == outlet_id,
            Order.business_date == business_date,
        )
        try:
            numbers = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to read order numbers", outlet_id=str(outlet_id), error=str(e))
            raise InternalError(outlet_id=str(outlet_id)) from e

        highest = 0
        for number in numbers:
            _, _, suffix = number.rpartition("-")
            if suffix.isdigit():
                highest = max(highest, int(suffix))

        return f"{prefix}-{highest + 1:03d}"

    def insert_order(self, order: Order) -> Order:
        """
        Insert a new order with its items and flush.

        Raises:
            DuplicateOrderNumberError: If the order number was taken meanwhile
        """
        self.session.add(order)
        try:
            self.session.flush()
        except IntegrityError as e:
            if ORDER_NUMBER_CONSTRAINT in str(e.orig) or "orders.order_number" in str(e.orig):
                raise DuplicateOrderNumberError(
                    "order number already taken",
                    order_number=order.order_number,
                    outlet_id=str(order.outlet_id),
                ) from e
            raise

        logger.info(
            "Order inserted",
            order_id=str(order.id),
            order_number=order.order_number,
            items=len(order.items),
        )
        return order

    def build_item(
        self,
        pricing: ItemPricing,
        product_id: uuid.UUID,
        variant_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
        position: int = 0,
    ) -> OrderItem:
        """Create an unsaved OrderItem from a price snapshot."""
        item = OrderItem(
            id=uuid.uuid4(),
            product_id=product_id,
            variant_id=variant_id,
            quantity=pricing.quantity,
            unit_price=pricing.unit_price,
            discount_type=pricing.discount_type,
            discount_value=pricing.discount_value,
            discount_amount=pricing.discount_amount,
            subtotal=pricing.subtotal,
            notes=notes,
            status=OrderItemStatus.PENDING,
            station=pricing.station,
            position=position,
        )
        item.modifiers = [
            OrderItemModifier(
                id=uuid.uuid4(),
                modifier_id=modifier.modifier_id,
                quantity=modifier.quantity,
                unit_price=modifier.unit_price,
            )
            for modifier in pricing.modifiers
        ]
        return item

    def add_item(self, order: Order, item: OrderItem) -> OrderItem:
        order.items.append(item)
        self.session.flush()
        return item

    def get_item(self, order: Order, item_id: uuid.UUID) -> OrderItem:
        """
        Find an item of an already loaded order.

        Raises:
            NotFoundError: If the item does not belong to the order
        """
        for item in order.items:
            if item.id == item_id:
                return item
        raise NotFoundError(
            "order item not found",
            order_id=str(order.id),
            item_id=str(item_id),
        )

    def count_items(self, order_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(OrderItem).where(OrderItem.order_id == order_id)
        return self.session.execute(stmt).scalar_one()

    def apply_item_pricing(self, item: OrderItem, pricing: ItemPricing) -> OrderItem:
        item.quantity = pricing.quantity
        item.unit_price = pricing.unit_price
        item.discount_amount = pricing.discount_amount
        item.subtotal = pricing.subtotal
        self.session.flush()
        return item

    def delete_item(self, order: Order, item: OrderItem) -> None:
        """Delete an item; its modifier snapshots go with it."""
        order.items.remove(item)
        self.session.flush()
        logger.info("Order item deleted", order_id=str(order.id), item_id=str(item.id))

    def apply_totals(self, order: Order, totals: OrderTotals) -> Order:
        order.subtotal = totals.subtotal
        order.discount_type = totals.discount_type
        order.discount_value = totals.discount_value
        order.discount_amount = totals.discount_amount
        order.tax_amount = totals.tax_amount
        order.total_amount = totals.total_amount
        self.session.flush()
        return order

    def compare_and_set_status(
        self,
        order: Order,
        expected: OrderStatus,
        new_status: OrderStatus,
        catering_status: Optional[CateringStatus] = None,
    ) -> bool:
        """
        Move the order to ``new_status`` only if it is still ``expected``.

        Returns:
            True if the row was updated, False if another writer moved it
        """
        values: dict[str, Any] = {"status": new_status}
        if new_status == OrderStatus.COMPLETED:
            values["completed_at"] = datetime.now(timezone.utc)
        if catering_status is not None:
            values["catering_status"] = catering_status

        stmt = (
            update(Order)
            .where(Order.id == order.id, Order.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            return False

        for key, value in values.items():
            set_committed_value(order, key, value)
        return True

    def complete_locked_order(self, order: Order) -> Order:
        """Mark a locked order COMPLETED."""
        order.status = OrderStatus.COMPLETED
        order.completed_at = datetime.now(timezone.utc)
        self.session.flush()
        return order

    def set_catering_status(self, order: Order, status: CateringStatus) -> Order:
        order.catering_status = status
        self.session.flush()
        return order

    def compare_and_set_item_status(
        self,
        item: OrderItem,
        expected: OrderItemStatus,
        new_status: OrderItemStatus,
    ) -> bool:
        stmt = (
            update(OrderItem)
            .where(OrderItem.id == item.id, OrderItem.status == expected)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            return False
        set_committed_value(item, "status", new_status)
        return True

    def _execute_scalar(self, stmt, operation: str, **context: Any) -> Optional[Any]:
        try:
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Order query failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                **{key: str(value) for key, value in context.items()},
            )
            raise InternalError(operation=operation) from e
