"""Order, item and catering status enums with their transition tables.

This module defines the enums that drive the order lifecycle together with
the immutable adjacency maps consulted by the state machines. The maps are
built once at import and never mutated.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from pos_core.core.exceptions import ValidationError


class ParsableEnum(str, Enum):
    """String enum parsed from raw caller input."""

    @classmethod
    def from_string(cls, value: Optional[str]):
        """Convert a raw string into the enum.

        Args:
            value: String representation, case-insensitive

        Returns:
            Enum member

        Raises:
            ValidationError: If value is empty or not a member
        """
        if value is None:
            raise ValidationError(f"invalid {cls._label()}", value=value)
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid_values = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"invalid {cls._label()}",
                value=value,
                valid_values=valid_values,
            ) from None

    @classmethod
    def _label(cls) -> str:
        return "value"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class OrderType(ParsableEnum):
    """How the order is served."""

    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"
    CATERING = "CATERING"

    @classmethod
    def _label(cls) -> str:
        return "order_type"


class OrderStatus(ParsableEnum):
    """Order lifecycle status.

    Valid transitions:
    - NEW -> PREPARING, CANCELLED
    - PREPARING -> READY, CANCELLED
    - READY -> COMPLETED, CANCELLED
    - COMPLETED -> (terminal state)
    - CANCELLED -> (terminal state)

    Full payment may also complete an order directly from NEW, PREPARING or
    READY; that path is owned by payment reconciliation.
    """

    NEW = "NEW"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @classmethod
    def _label(cls) -> str:
        return "status"

    def is_terminal(self) -> bool:
        return self in {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

    def accepts_item_changes(self) -> bool:
        """Only NEW orders may have items added, changed or removed."""
        return self == OrderStatus.NEW


class OrderItemStatus(ParsableEnum):
    """Kitchen status of a single line item.

    Valid transitions:
    - PENDING -> PREPARING
    - PREPARING -> READY
    - READY -> (terminal state)
    """

    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"

    @classmethod
    def _label(cls) -> str:
        return "item status"

    def is_terminal(self) -> bool:
        return self == OrderItemStatus.READY


class CateringStatus(ParsableEnum):
    """Deposit and settlement state of a CATERING order."""

    BOOKED = "BOOKED"
    DP_PAID = "DP_PAID"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"

    @classmethod
    def _label(cls) -> str:
        return "catering_status"

    def is_terminal(self) -> bool:
        return self in {CateringStatus.SETTLED, CateringStatus.CANCELLED}


class DiscountType(ParsableEnum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"

    @classmethod
    def _label(cls) -> str:
        return "discount_type"


class Station(ParsableEnum):
    """Kitchen station a product is routed to."""

    GRILL = "GRILL"
    BEVERAGE = "BEVERAGE"
    RICE = "RICE"
    DESSERT = "DESSERT"

    @classmethod
    def _label(cls) -> str:
        return "station"


ORDER_STATUS_TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = MappingProxyType({
    OrderStatus.NEW: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),  # Terminal
    OrderStatus.CANCELLED: frozenset(),  # Terminal
})

# Statuses from which a fully paid order is completed automatically
AUTO_COMPLETABLE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.NEW,
    OrderStatus.PREPARING,
    OrderStatus.READY,
})

ITEM_STATUS_TRANSITIONS: Mapping[OrderItemStatus, FrozenSet[OrderItemStatus]] = MappingProxyType({
    OrderItemStatus.PENDING: frozenset({OrderItemStatus.PREPARING}),
    OrderItemStatus.PREPARING: frozenset({OrderItemStatus.READY}),
    OrderItemStatus.READY: frozenset(),  # Terminal
})


def validate_order_status_transition(
    current: OrderStatus,
    new: OrderStatus
) -> bool:
    """Validate if order status transition is allowed.

    Args:
        current: Current order status
        new: Desired new status

    Returns:
        True if transition is valid
    """
    return new in ORDER_STATUS_TRANSITIONS.get(current, frozenset())


def validate_item_status_transition(
    current: OrderItemStatus,
    new: OrderItemStatus
) -> bool:
    return new in ITEM_STATUS_TRANSITIONS.get(current, frozenset())


def get_allowed_order_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    """Get all allowed manual transitions from current order status."""
    return ORDER_STATUS_TRANSITIONS.get(current, frozenset())


def get_allowed_item_transitions(
    current: OrderItemStatus
) -> FrozenSet[OrderItemStatus]:
    return ITEM_STATUS_TRANSITIONS.get(current, frozenset())
