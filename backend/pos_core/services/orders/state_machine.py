"""Order and item state machines.

This module implements OrderStateMachine and ItemStateMachine. Manual order
transitions are validated against the transition table and written with a
compare-and-swap on the status that was read, so two cashiers racing on the
same order can never both win. Payment-driven completion bypasses the table
but only runs while the payment path holds the order row lock.
"""

from typing import FrozenSet, Optional

from sqlalchemy.orm import Session

from pos_core.core.exceptions import ConflictError
from pos_core.core.logging import get_logger
from pos_core.database.models import Order, OrderItem
from pos_core.services.orders.catering import CateringLifecycle
from pos_core.services.orders.enums import (
    AUTO_COMPLETABLE_STATUSES,
    OrderItemStatus,
    OrderStatus,
    get_allowed_item_transitions,
    get_allowed_order_transitions,
    validate_item_status_transition,
    validate_order_status_transition,
)
from pos_core.services.orders.repository import OrderRepository

logger = get_logger(__name__)


class StateTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, current_state: str, target_state: str, **context):
        super().__init__(
            f"cannot transition from {current_state} to {target_state}",
            current_state=current_state,
            target_state=target_state,
            **context,
        )
        self.current_state = current_state
        self.target_state = target_state


class ConcurrentModificationError(ConflictError):
    """Raised when the status changed between read and write."""

    pass


class OrderStateMachine:
    """State machine for the order lifecycle.

    Args:
        db_session: Session of the calling unit of work
        repository: Optional repository sharing that session
    """

    def __init__(
        self,
        db_session: Session,
        repository: Optional[OrderRepository] = None,
        catering: Optional[CateringLifecycle] = None,
    ):
        self.db = db_session
        self.repository = repository or OrderRepository(db_session)
        self.catering = catering or CateringLifecycle()

    def validate_transition(self, order: Order, target_status: OrderStatus) -> None:
        """Validate a manual transition.

        Raises:
            StateTransitionError: If the table does not allow it
        """
        current_status = order.status
        if not validate_order_status_transition(current_status, target_status):
            raise StateTransitionError(
                current_status.value,
                target_status.value,
                order_id=str(order.id),
                allowed_transitions=sorted(
                    s.value for s in get_allowed_order_transitions(current_status)
                ),
            )

    def apply_transition(self, order: Order, target_status: OrderStatus) -> Order:
        """Validate and write a manual transition.

        COMPLETED stamps completed_at; CANCELLED also cancels the catering
        sub-lifecycle of a catering order.

        Raises:
            StateTransitionError: If the table does not allow it
            ConcurrentModificationError: If another writer moved the order first
        """
        current_status = order.status
        self.validate_transition(order, target_status)

        catering_status = None
        if target_status == OrderStatus.CANCELLED:
            catering_status = self.catering.on_cancel(order)

        if not self.repository.compare_and_set_status(
            order,
            expected=current_status,
            new_status=target_status,
            catering_status=catering_status,
        ):
            raise ConcurrentModificationError(
                "order status changed, please retry",
                order_id=str(order.id),
                expected_status=current_status.value,
            )

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            transition=f"{current_status.value}->{target_status.value}",
        )
        return order

    def cancel(self, order: Order) -> Order:
        """Cancel an order that is not yet terminal.

        Raises:
            ConflictError: If the order is already completed or cancelled
        """
        if order.status == OrderStatus.COMPLETED:
            raise ConflictError("cannot cancel a completed order", order_id=str(order.id))
        if order.status == OrderStatus.CANCELLED:
            raise ConflictError("order is already cancelled", order_id=str(order.id))
        return self.apply_transition(order, OrderStatus.CANCELLED)

    def complete_on_payment(self, order: Order) -> bool:
        """Complete a fully paid order.

        The caller must hold the order row lock.

        Returns:
            True if the order moved to COMPLETED
        """
        if order.status not in AUTO_COMPLETABLE_STATUSES:
            return False

        previous = order.status
        self.repository.complete_locked_order(order)
        logger.info(
            "Order completed by payment",
            order_id=str(order.id),
            transition=f"{previous.value}->{OrderStatus.COMPLETED.value}",
        )
        return True

    def get_allowed_transitions(self, order: Order) -> FrozenSet[OrderStatus]:
        return get_allowed_order_transitions(order.status)


class ItemStateMachine:
    """State machine for kitchen progress of line items."""

    def __init__(self, db_session: Session, repository: Optional[OrderRepository] = None):
        self.db = db_session
        self.repository = repository or OrderRepository(db_session)

    def validate_transition(
        self,
        order: Order,
        item: OrderItem,
        target_status: OrderItemStatus,
    ) -> None:
        """Validate an item transition against its parent order.

        Raises:
            ConflictError: If the order is terminal
            StateTransitionError: If the item table does not allow it
        """
        if order.status.is_terminal():
            raise ConflictError(
                f"cannot update items on a {order.status.value} order",
                order_id=str(order.id),
                item_id=str(item.id),
            )
        if not validate_item_status_transition(item.status, target_status):
            raise StateTransitionError(
                item.status.value,
                target_status.value,
                item_id=str(item.id),
                allowed_transitions=sorted(
                    s.value for s in get_allowed_item_transitions(item.status)
                ),
            )

    def apply_transition(
        self,
        order: Order,
        item: OrderItem,
        target_status: OrderItemStatus,
    ) -> OrderItem:
        current_status = item.status
        self.validate_transition(order, item, target_status)

        if not self.repository.compare_and_set_item_status(item, current_status, target_status):
            raise ConcurrentModificationError(
                "order item status changed, please retry",
                item_id=str(item.id),
                expected_status=current_status.value,
            )

        logger.info(
            "Order item status changed",
            order_id=str(order.id),
            item_id=str(item.id),
            transition=f"{current_status.value}->{target_status.value}",
        )
        return item


def get_order_state_machine(db_session: Session) -> OrderStateMachine:
    """Factory function to create OrderStateMachine instance."""
    return OrderStateMachine(db_session=db_session)
