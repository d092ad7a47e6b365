"""
Tests for order enums and the transition tables.
"""

import pytest

from pos_core.core.exceptions import ValidationError
from pos_core.services.orders.enums import (
    AUTO_COMPLETABLE_STATUSES,
    ITEM_STATUS_TRANSITIONS,
    ORDER_STATUS_TRANSITIONS,
    OrderItemStatus,
    OrderStatus,
    OrderType,
    get_allowed_item_transitions,
    get_allowed_order_transitions,
    validate_item_status_transition,
    validate_order_status_transition,
)
from pos_core.services.payments.enums import PaymentMethod, PaymentStatus


class TestFromString:
    """Parsing raw strings at the boundary."""

    def test_case_insensitive(self) -> None:
        assert OrderType.from_string("dine_in") == OrderType.DINE_IN
        assert OrderStatus.from_string(" Ready ") == OrderStatus.READY
        assert PaymentMethod.from_string("qris") == PaymentMethod.QRIS

    def test_member_passes_through(self) -> None:
        assert OrderStatus.from_string(OrderStatus.NEW) is OrderStatus.NEW

    @pytest.mark.parametrize(
        "enum_cls,label",
        [
            (OrderType, "invalid order_type"),
            (OrderStatus, "invalid status"),
            (PaymentMethod, "invalid payment_method"),
        ],
    )
    def test_unknown_value_rejected(self, enum_cls, label: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            enum_cls.from_string("BOGUS")

        assert exc_info.value.message == label
        assert "valid_values" in exc_info.value.context

    def test_none_rejected(self) -> None:
        with pytest.raises(ValidationError, match="invalid order_type"):
            OrderType.from_string(None)

    def test_display_name(self) -> None:
        assert OrderType.DINE_IN.display_name == "Dine In"


class TestOrderStatusTable:
    """Manual order transitions."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.NEW, OrderStatus.PREPARING),
            (OrderStatus.NEW, OrderStatus.CANCELLED),
            (OrderStatus.PREPARING, OrderStatus.READY),
            (OrderStatus.PREPARING, OrderStatus.CANCELLED),
            (OrderStatus.READY, OrderStatus.COMPLETED),
            (OrderStatus.READY, OrderStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current: OrderStatus, target: OrderStatus) -> None:
        assert validate_order_status_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.NEW, OrderStatus.COMPLETED),
            (OrderStatus.NEW, OrderStatus.READY),
            (OrderStatus.READY, OrderStatus.PREPARING),
            (OrderStatus.PREPARING, OrderStatus.NEW),
            (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
            (OrderStatus.CANCELLED, OrderStatus.NEW),
        ],
    )
    def test_refused(self, current: OrderStatus, target: OrderStatus) -> None:
        assert not validate_order_status_transition(current, target)

    def test_terminal_states_have_no_exits(self) -> None:
        for status in OrderStatus:
            assert status.is_terminal() == (get_allowed_order_transitions(status) == frozenset())

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            ORDER_STATUS_TRANSITIONS[OrderStatus.NEW] = frozenset()  # type: ignore[index]

    def test_only_new_accepts_item_changes(self) -> None:
        assert [s for s in OrderStatus if s.accepts_item_changes()] == [OrderStatus.NEW]

    def test_auto_completable_statuses(self) -> None:
        assert AUTO_COMPLETABLE_STATUSES == {
            OrderStatus.NEW,
            OrderStatus.PREPARING,
            OrderStatus.READY,
        }


class TestItemStatusTable:
    def test_forward_only(self) -> None:
        assert validate_item_status_transition(OrderItemStatus.PENDING, OrderItemStatus.PREPARING)
        assert validate_item_status_transition(OrderItemStatus.PREPARING, OrderItemStatus.READY)
        assert not validate_item_status_transition(OrderItemStatus.PENDING, OrderItemStatus.READY)
        assert not validate_item_status_transition(OrderItemStatus.READY, OrderItemStatus.PENDING)

    def test_ready_is_terminal(self) -> None:
        assert get_allowed_item_transitions(OrderItemStatus.READY) == frozenset()
        assert OrderItemStatus.READY.is_terminal()
        assert set(ITEM_STATUS_TRANSITIONS) == set(OrderItemStatus)


class TestPaymentEnums:
    def test_only_cash_requires_amount_received(self) -> None:
        assert PaymentMethod.CASH.requires_amount_received()
        assert not PaymentMethod.QRIS.requires_amount_received()
        assert not PaymentMethod.TRANSFER.requires_amount_received()

    def test_only_completed_counts(self) -> None:
        assert [s for s in PaymentStatus if s.counts_towards_balance()] == [
            PaymentStatus.COMPLETED
        ]
