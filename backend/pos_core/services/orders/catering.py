"""Catering deposit and settlement sub-lifecycle.

A CATERING order is BOOKED when created. The first payment on a booked order
records the down payment (DP_PAID); the payment that covers the full total
settles it (SETTLED), even when that same payment is the first one.
Cancelling the order cancels the booking. Orders of any other type carry no
catering status and every hook here is a no-op for them.
"""

from decimal import Decimal
from typing import Optional

from pos_core.core.logging import get_logger
from pos_core.database.models import Order
from pos_core.services.orders.enums import CateringStatus
from pos_core.services.pricing import money

logger = get_logger(__name__)


class CateringLifecycle:
    """Derives catering status changes from order events."""

    def initial_status(self, order: Order) -> Optional[CateringStatus]:
        return CateringStatus.BOOKED if order.is_catering else None

    def on_payment(
        self,
        order: Order,
        paid_before: Decimal,
        paid_after: Decimal,
    ) -> Optional[CateringStatus]:
        """Catering status after a payment, or None if unchanged.

        Args:
            order: Locked order receiving the payment
            paid_before: Completed payments before this one
            paid_after: Completed payments including this one
        """
        if not order.is_catering or order.catering_status is None:
            return None
        if order.catering_status == CateringStatus.CANCELLED:
            return None

        status = order.catering_status
        if status == CateringStatus.BOOKED and paid_before == money.ZERO:
            status = CateringStatus.DP_PAID
        if paid_after >= order.total_amount:
            status = CateringStatus.SETTLED

        if status == order.catering_status:
            return None

        logger.info(
            "Catering status changed",
            order_id=str(order.id),
            transition=f"{order.catering_status.value}->{status.value}",
            paid=money.format_money(paid_after),
        )
        return status

    def on_cancel(self, order: Order) -> Optional[CateringStatus]:
        if not order.is_catering or order.catering_status is None:
            return None
        return CateringStatus.CANCELLED
