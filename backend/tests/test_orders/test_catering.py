"""
Tests for the catering deposit and settlement sub-lifecycle.
"""

from decimal import Decimal
from unittest.mock import Mock
from uuid import uuid4

import pytest

from pos_core.services.orders.catering import CateringLifecycle
from pos_core.services.orders.enums import CateringStatus


@pytest.fixture
def lifecycle() -> CateringLifecycle:
    return CateringLifecycle()


def make_order(catering_status, total="500000.00", is_catering=True) -> Mock:
    order = Mock()
    order.id = uuid4()
    order.is_catering = is_catering
    order.catering_status = catering_status
    order.total_amount = Decimal(total)
    return order


class TestCateringLifecycle:
    def test_initial_status(self, lifecycle: CateringLifecycle) -> None:
        assert lifecycle.initial_status(make_order(None)) == CateringStatus.BOOKED
        assert lifecycle.initial_status(make_order(None, is_catering=False)) is None

    def test_first_partial_payment_records_down_payment(
        self, lifecycle: CateringLifecycle
    ) -> None:
        order = make_order(CateringStatus.BOOKED)

        status = lifecycle.on_payment(order, Decimal("0.00"), Decimal("100000.00"))

        assert status == CateringStatus.DP_PAID

    def test_first_payment_covering_total_settles(
        self, lifecycle: CateringLifecycle
    ) -> None:
        order = make_order(CateringStatus.BOOKED)

        status = lifecycle.on_payment(order, Decimal("0.00"), Decimal("500000.00"))

        assert status == CateringStatus.SETTLED

    def test_final_payment_settles(self, lifecycle: CateringLifecycle) -> None:
        order = make_order(CateringStatus.DP_PAID)

        status = lifecycle.on_payment(order, Decimal("100000.00"), Decimal("500000.00"))

        assert status == CateringStatus.SETTLED

    def test_intermediate_payment_keeps_status(
        self, lifecycle: CateringLifecycle
    ) -> None:
        order = make_order(CateringStatus.DP_PAID)

        assert lifecycle.on_payment(order, Decimal("100000.00"), Decimal("200000.00")) is None

    def test_cancelled_booking_never_changes(self, lifecycle: CateringLifecycle) -> None:
        order = make_order(CateringStatus.CANCELLED)

        assert lifecycle.on_payment(order, Decimal("0.00"), Decimal("500000.00")) is None

    def test_non_catering_orders_ignored(self, lifecycle: CateringLifecycle) -> None:
        order = make_order(None, is_catering=False)

        assert lifecycle.on_payment(order, Decimal("0.00"), Decimal("500000.00")) is None
        assert lifecycle.on_cancel(order) is None

    def test_cancel(self, lifecycle: CateringLifecycle) -> None:
        assert lifecycle.on_cancel(make_order(CateringStatus.BOOKED)) == CateringStatus.CANCELLED
