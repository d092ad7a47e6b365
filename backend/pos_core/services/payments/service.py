"""
Payment reconciliation service.

This module implements the PaymentService class. Adding a payment is one
atomic unit of work that holds the order row lock from the first read to
the commit:

1. lock the order (outlet-scoped)
2. refuse cancelled orders
3. sum completed payments inside the lock
4. refuse orders that are already fully paid
5. refuse payments larger than the remaining balance
6. record the payment
7. advance the catering sub-lifecycle
8. complete the order when it is fully paid
9. commit

Because every payment on an order queues behind the same lock, the sum read
in step 3 is the true amount paid, overpayment is impossible and only one
payment can ever observe the order becoming fully paid.
"""

import uuid
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from sqlalchemy.orm import Session

from pos_core.core.exceptions import ConflictError, ValidationError
from pos_core.core.logging import get_logger, log_performance
from pos_core.database.connection import transaction
from pos_core.database.models import Order, Payment
from pos_core.schemas.orders import parse_command
from pos_core.schemas.payments import PaymentCreateRequest
from pos_core.services.orders.catering import CateringLifecycle
from pos_core.services.orders.enums import OrderStatus
from pos_core.services.orders.repository import OrderRepository
from pos_core.services.orders.state_machine import OrderStateMachine
from pos_core.services.payments.enums import PaymentMethod
from pos_core.services.payments.repository import PaymentRepository
from pos_core.services.pricing import money

logger = get_logger(__name__)


class PaymentService:
    """
    Payment reconciliation against order balances.

    Attributes:
        order_repository: Order access sharing the session
        payment_repository: Payment access sharing the session
        state_machine: Used for payment-driven completion
    """

    def __init__(self, session: Session):
        self.session = session
        self.order_repository = OrderRepository(session)
        self.payment_repository = PaymentRepository(session)
        self.catering = CateringLifecycle()
        self.state_machine = OrderStateMachine(
            session, self.order_repository, self.catering
        )

    def validate_payment(
        self,
        payment_method: Any,
        amount: Decimal,
        amount_received: Optional[Decimal],
    ) -> tuple[PaymentMethod, Optional[Decimal]]:
        """
        Check payment input before touching the order.

        Returns:
            Parsed method and change due (CASH only)

        Raises:
            ValidationError: With the first failing rule
        """
        if amount <= money.ZERO:
            raise ValidationError("amount must be positive", amount=str(amount))
        money.require_cents(amount)

        raw_method = str(getattr(payment_method, "value", payment_method)).strip().upper()
        is_cash = raw_method == PaymentMethod.CASH.value
        if is_cash:
            if amount_received is None:
                raise ValidationError("amount_received is required for CASH payments")
            money.require_cents(amount_received, "amount_received")
            if amount_received < amount:
                raise ValidationError(
                    "amount_received must be >= amount",
                    amount=str(amount),
                    amount_received=str(amount_received),
                )

        method = PaymentMethod.from_string(payment_method)
        change = amount_received - amount if is_cash else None
        return method, change

    def add_payment(
        self,
        request: Union[PaymentCreateRequest, dict[str, Any]],
    ) -> tuple[Payment, Order]:
        """
        Record a payment against an order's remaining balance.

        Not idempotent: every call that succeeds records a new payment.

        Returns:
            The recorded payment and the order after reconciliation

        Raises:
            ValidationError: On bad amount, cash tendered or method
            NotFoundError: If the order is not in the outlet
            ConflictError: On a cancelled order, a fully paid order or an
                amount above the remaining balance
        """
        command = parse_command(PaymentCreateRequest, request)
        method, change = self.validate_payment(
            command.payment_method, command.amount, command.amount_received
        )
        amount = money.quantize(command.amount)
        amount_received = (
            money.quantize(command.amount_received)
            if method == PaymentMethod.CASH
            else None
        )
        if change is not None:
            change = money.quantize(change)

        context = {"order_id": str(command.order_id), "method": method.value}
        with log_performance(logger, "add_payment", **context):
            with transaction(self.session, "add_payment", **context):
                order = self.order_repository.get_order_for_update(
                    command.outlet_id, command.order_id
                )

                if order.status == OrderStatus.CANCELLED:
                    raise ConflictError("cannot add payment to cancelled order", **context)

                total_paid = self.payment_repository.sum_completed_payments(order.id)
                if total_paid >= order.total_amount:
                    raise ConflictError(
                        "order is already fully paid",
                        total_paid=money.format_money(total_paid),
                        **context,
                    )

                new_total = total_paid + amount
                if new_total > order.total_amount:
                    raise ConflictError(
                        "payment exceeds remaining balance",
                        remaining=money.format_money(order.total_amount - total_paid),
                        amount=money.format_money(amount),
                        **context,
                    )

                payment = self.payment_repository.create_payment(
                    order,
                    payment_method=method,
                    amount=amount,
                    processed_by=command.processed_by,
                    amount_received=amount_received,
                    change_amount=change,
                    reference_number=command.reference_number,
                )

                catering_status = self.catering.on_payment(order, total_paid, new_total)
                if catering_status is not None:
                    self.order_repository.set_catering_status(order, catering_status)

                if new_total >= order.total_amount:
                    self.state_machine.complete_on_payment(order)

        logger.info(
            "Payment added",
            payment_id=str(payment.id),
            amount=money.format_money(payment.amount),
            change=money.format_money(payment.change_amount) if change is not None else None,
            total_paid=money.format_money(new_total),
            order_status=order.status.value,
            **context,
        )
        return payment, order

    def list_payments(self, outlet_id: uuid.UUID, order_id: uuid.UUID) -> Sequence[Payment]:
        """Payments of an order in the order they were processed."""
        order = self.order_repository.get_order(outlet_id, order_id)
        return self.payment_repository.list_payments(order.id)

    def get_remaining_balance(self, outlet_id: uuid.UUID, order_id: uuid.UUID) -> Decimal:
        """Amount still due on an order."""
        order = self.order_repository.get_order(outlet_id, order_id)
        paid = self.payment_repository.sum_completed_payments(order.id)
        return money.quantize(order.total_amount - paid)


def get_payment_service(session: Session) -> PaymentService:
    return PaymentService(session)
