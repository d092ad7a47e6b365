"""
Payment data access repository.

Payments are inserted and summed inside the caller's transaction, after the
caller has locked the order row.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_core.core.exceptions import InternalError
from pos_core.core.logging import get_logger
from pos_core.database.models import Order, Payment
from pos_core.services.payments.enums import PaymentMethod, PaymentStatus
from pos_core.services.pricing import money

logger = get_logger(__name__)


class PaymentRepository:
    """Repository for payment persistence.

    Args:
        session: Session of the calling unit of work
    """

    def __init__(self, session: Session):
        self.session = session

    def sum_completed_payments(self, order_id: uuid.UUID) -> Decimal:
        """Total of COMPLETED payments on an order, 0.00 when there are none."""
        stmt = select(func.sum(Payment.amount)).where(
            Payment.order_id == order_id,
            Payment.status == PaymentStatus.COMPLETED,
        )
        try:
            total = self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to sum payments",
                order_id=str(order_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InternalError(order_id=str(order_id)) from e

        return money.quantize(total if total is not None else money.ZERO)

    def create_payment(
        self,
        order: Order,
        payment_method: PaymentMethod,
        amount: Decimal,
        processed_by: uuid.UUID,
        amount_received: Optional[Decimal] = None,
        change_amount: Optional[Decimal] = None,
        reference_number: Optional[str] = None,
    ) -> Payment:
        """Insert a COMPLETED payment on a locked order and flush it."""
        payment = Payment(
            id=uuid.uuid4(),
            order_id=order.id,
            payment_method=payment_method,
            amount=money.quantize(amount),
            status=PaymentStatus.COMPLETED,
            reference_number=reference_number,
            amount_received=(
                money.quantize(amount_received) if amount_received is not None else None
            ),
            change_amount=(
                money.quantize(change_amount) if change_amount is not None else None
            ),
            processed_by=processed_by,
            processed_at=datetime.now(timezone.utc),
        )
        order.payments.append(payment)
        self.session.flush()

        logger.info(
            "Payment recorded",
            payment_id=str(payment.id),
            order_id=str(order.id),
            method=payment_method.value,
            amount=money.format_money(payment.amount),
        )
        return payment

    def list_payments(self, order_id: uuid.UUID) -> Sequence[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.order_id == order_id)
            .order_by(Payment.processed_at, Payment.id)
        )
        try:
            return self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list payments", order_id=str(order_id), error=str(e))
            raise InternalError(order_id=str(order_id)) from e
