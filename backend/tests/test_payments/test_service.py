"""
Test suite for PaymentService.

Covers payment validation order, change calculation, balance enforcement,
payment-driven completion, the catering deposit lifecycle and listing of
payments, against an in-memory SQLite database.
"""

import uuid
from decimal import Decimal
from typing import Any, Callable

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos_core.core.exceptions import ConflictError, NotFoundError, ValidationError
from pos_core.database.models import Order, Payment
from pos_core.schemas.payments import PaymentResponse
from pos_core.services.orders.enums import CateringStatus, OrderStatus
from pos_core.services.orders.service import OrderService
from pos_core.services.payments.enums import PaymentMethod, PaymentStatus
from pos_core.services.payments.service import PaymentService, get_payment_service


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def pay(
    payment_service: PaymentService,
    outlet_id: uuid.UUID,
    cashier_id: uuid.UUID,
) -> Callable[..., tuple[Payment, Order]]:
    """
    Factory adding a payment through the payment service.

    Returns:
        Callable taking the order, method and amounts
    """

    def _pay(order: Order, payment_method: str, amount: str, **extra: Any):
        request = {
            "outlet_id": outlet_id,
            "order_id": order.id,
            "payment_method": payment_method,
            "amount": amount,
            "processed_by": cashier_id,
        }
        request.update(extra)
        return payment_service.add_payment(request)

    return _pay


@pytest.fixture
def catering_order(
    make_order: Callable[..., Order],
    catalog: dict[str, Any],
    customer_id: uuid.UUID,
) -> Order:
    """CATERING order totalling 500000.00."""
    return make_order(
        order_type="CATERING",
        customer_id=customer_id,
        catering_date="2026-11-01T10:00:00+00:00",
        catering_dp_amount="100000",
        items=[{"product_id": catalog["paket"].id, "quantity": 5}],
    )


def count_payments(db_session: Session, order: Order) -> int:
    stmt = select(func.count()).select_from(Payment).where(Payment.order_id == order.id)
    return db_session.execute(stmt).scalar_one()


# ============================================================================
# Validation Tests
# ============================================================================


class TestValidatePayment:
    """Input rules checked before the order is touched."""

    @pytest.mark.parametrize(
        "method,amount,received,message",
        [
            ("CASH", "0", None, "amount must be positive"),
            ("CASH", "-10", "100", "amount must be positive"),
            ("CASH", "50000", None, "amount_received is required for CASH payments"),
            ("CASH", "50000", "49999.99", "amount_received must be >= amount"),
            ("CHEQUE", "50000", None, "invalid payment_method"),
            ("CHEQUE", "0", None, "amount must be positive"),
            ("QRIS", "0.005", None, "amount must have at most 2 decimal places"),
            (
                "CASH",
                "50000",
                "50000.001",
                "amount_received must have at most 2 decimal places",
            ),
        ],
    )
    def test_rules_in_order(
        self,
        payment_service: PaymentService,
        method: str,
        amount: str,
        received: Any,
        message: str,
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            payment_service.validate_payment(
                method,
                Decimal(amount),
                Decimal(received) if received is not None else None,
            )

        assert exc_info.value.message == message

    def test_cash_change(self, payment_service: PaymentService) -> None:
        method, change = payment_service.validate_payment(
            "cash", Decimal("50000.00"), Decimal("100000.00")
        )

        assert method == PaymentMethod.CASH
        assert change == Decimal("50000.00")

    def test_non_cash_has_no_change(self, payment_service: PaymentService) -> None:
        method, change = payment_service.validate_payment(
            "TRANSFER", Decimal("50000.00"), None
        )

        assert method == PaymentMethod.TRANSFER
        assert change is None

    def test_sub_cent_amount_not_rounded(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        db_session: Session,
    ) -> None:
        order = make_order()

        with pytest.raises(ValidationError) as exc_info:
            pay(order, "QRIS", "0.005")

        assert exc_info.value.message == "amount must have at most 2 decimal places"
        assert count_payments(db_session, order) == 0

    def test_trailing_zeros_accepted(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()

        payment, _ = pay(order, "QRIS", "25000.500")

        assert payment.amount == Decimal("25000.50")

    def test_float_amount_rejected(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()

        with pytest.raises(ValidationError) as exc_info:
            pay(order, "QRIS", 50000.0)

        assert exc_info.value.message == (
            "amount: amounts must be given as decimal strings or integers"
        )


# ============================================================================
# Reconciliation Tests
# ============================================================================


class TestAddPayment:
    """Payments against the remaining balance."""

    def test_partial_cash_payment(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
    ) -> None:
        """Total 100000.00, CASH 50000 with 100000 received."""
        order = make_order()

        payment, order = pay(order, "CASH", "50000", amount_received="100000")

        assert payment.payment_method == PaymentMethod.CASH
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.amount == Decimal("50000.00")
        assert payment.amount_received == Decimal("100000.00")
        assert payment.change_amount == Decimal("50000.00")
        assert order.status == OrderStatus.NEW
        assert order.completed_at is None

    def test_exact_cash_gives_zero_change(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()

        payment, _ = pay(order, "CASH", "30000", amount_received="30000")

        assert payment.change_amount == Decimal("0.00")
        assert PaymentResponse.model_validate(payment).model_dump()["change_amount"] == "0.00"

    def test_final_payment_completes_order(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        payment_service: PaymentService,
        outlet_id: uuid.UUID,
    ) -> None:
        """Total 100000.00 with 40000.00 paid; CASH 60000 completes it."""
        order = make_order()
        pay(order, "QRIS", "40000", reference_number="QR-1")

        payment, order = pay(order, "CASH", "60000", amount_received="60000")

        assert payment.change_amount == Decimal("0.00")
        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at is not None
        assert payment_service.get_remaining_balance(outlet_id, order.id) == Decimal("0.00")

    def test_completes_from_preparing(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        order_service: OrderService,
        outlet_id: uuid.UUID,
    ) -> None:
        order = make_order()
        order_service.update_status(outlet_id, order.id, "PREPARING")

        _, order = pay(order, "TRANSFER", "100000")

        assert order.status == OrderStatus.COMPLETED
        assert order_service.get_order(outlet_id, order.id).status == OrderStatus.COMPLETED

    def test_overpayment_refused(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        payment_service: PaymentService,
        db_session: Session,
        outlet_id: uuid.UUID,
    ) -> None:
        """Paid 80000.00 of 100000.00; a 30000 payment is refused."""
        order = make_order()
        pay(order, "TRANSFER", "80000")

        with pytest.raises(ConflictError) as exc_info:
            pay(order, "TRANSFER", "30000")

        assert exc_info.value.message == "payment exceeds remaining balance"
        assert exc_info.value.context["remaining"] == "20000.00"
        assert count_payments(db_session, order) == 1
        assert payment_service.get_remaining_balance(outlet_id, order.id) == Decimal("20000.00")

    def test_fully_paid_order_refused(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        db_session: Session,
    ) -> None:
        order = make_order()
        pay(order, "QRIS", "100000")

        with pytest.raises(ConflictError, match="order is already fully paid"):
            pay(order, "QRIS", "1")

        assert count_payments(db_session, order) == 1

    def test_zero_total_order_counts_as_paid(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order(discount_type="PERCENTAGE", discount_value="100")
        assert order.total_amount == Decimal("0.00")

        with pytest.raises(ConflictError, match="order is already fully paid"):
            pay(order, "CASH", "1000", amount_received="1000")

    def test_cancelled_order_refused(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        order_service: OrderService,
        db_session: Session,
        outlet_id: uuid.UUID,
    ) -> None:
        order = make_order()
        order_service.cancel_order(outlet_id, order.id)

        with pytest.raises(ConflictError) as exc_info:
            pay(order, "QRIS", "10000")

        assert exc_info.value.message == "cannot add payment to cancelled order"
        assert count_payments(db_session, order) == 0

    def test_order_of_other_outlet_not_found(
        self,
        payment_service: PaymentService,
        make_order: Callable[..., Order],
        other_outlet_id: uuid.UUID,
        cashier_id: uuid.UUID,
    ) -> None:
        order = make_order()

        with pytest.raises(NotFoundError, match="order not found"):
            payment_service.add_payment(
                {
                    "outlet_id": other_outlet_id,
                    "order_id": order.id,
                    "payment_method": "QRIS",
                    "amount": "10000",
                    "processed_by": cashier_id,
                }
            )

    def test_amount_received_ignored_for_non_cash(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()

        payment, _ = pay(order, "QRIS", "20000", amount_received="50000")

        assert payment.amount_received is None
        assert payment.change_amount is None

    def test_paid_never_exceeds_total(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        payment_service: PaymentService,
        outlet_id: uuid.UUID,
    ) -> None:
        order = make_order()
        attempts = ["30000", "30000", "30000", "30000", "10000", "5000"]

        for amount in attempts:
            try:
                pay(order, "TRANSFER", amount)
            except ConflictError:
                pass

        paid = sum(p.amount for p in payment_service.list_payments(outlet_id, order.id))
        assert paid == Decimal("100000.00")
        assert payment_service.get_remaining_balance(outlet_id, order.id) == Decimal("0.00")

    def test_factory(self, db_session: Session) -> None:
        assert isinstance(get_payment_service(db_session), PaymentService)


# ============================================================================
# Catering Tests
# ============================================================================


class TestCateringPayments:
    """Deposit and settlement of catering orders."""

    def test_down_payment(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        catering_order: Order,
    ) -> None:
        """BOOKED, nothing paid, 100000 of 500000 records the down payment."""
        assert catering_order.catering_status == CateringStatus.BOOKED

        _, order = pay(catering_order, "TRANSFER", "100000")

        assert order.catering_status == CateringStatus.DP_PAID
        assert order.status == OrderStatus.NEW

    def test_settlement_completes_order(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        catering_order: Order,
        payment_service: PaymentService,
        outlet_id: uuid.UUID,
    ) -> None:
        pay(catering_order, "TRANSFER", "100000")
        _, order = pay(catering_order, "TRANSFER", "250000")
        assert order.catering_status == CateringStatus.DP_PAID

        _, order = pay(catering_order, "CASH", "150000", amount_received="200000")

        assert order.catering_status == CateringStatus.SETTLED
        assert order.status == OrderStatus.COMPLETED
        assert [p.amount for p in payment_service.list_payments(outlet_id, order.id)] == [
            Decimal("100000.00"),
            Decimal("250000.00"),
            Decimal("150000.00"),
        ]

    def test_single_full_payment_settles(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        catering_order: Order,
    ) -> None:
        _, order = pay(catering_order, "TRANSFER", "500000")

        assert order.catering_status == CateringStatus.SETTLED
        assert order.status == OrderStatus.COMPLETED


# ============================================================================
# Listing Tests
# ============================================================================


class TestListPayments:
    def test_in_processing_order(
        self,
        pay: Callable[..., tuple[Payment, Order]],
        make_order: Callable[..., Order],
        payment_service: PaymentService,
        outlet_id: uuid.UUID,
    ) -> None:
        order = make_order()
        first, _ = pay(order, "QRIS", "10000", reference_number="QR-9")
        second, _ = pay(order, "CASH", "5000", amount_received="10000")

        payments = payment_service.list_payments(outlet_id, order.id)

        assert [p.id for p in payments] == [first.id, second.id]
        rendered = PaymentResponse.model_validate(payments[0]).model_dump()
        assert rendered["payment_method"] == "QRIS"
        assert rendered["amount"] == "10000.00"
        assert rendered["reference_number"] == "QR-9"

    def test_empty(
        self,
        make_order: Callable[..., Order],
        payment_service: PaymentService,
        outlet_id: uuid.UUID,
    ) -> None:
        order = make_order()

        assert list(payment_service.list_payments(outlet_id, order.id)) == []
        assert payment_service.get_remaining_balance(outlet_id, order.id) == Decimal("100000.00")

    def test_scoped_by_outlet(
        self,
        make_order: Callable[..., Order],
        payment_service: PaymentService,
        other_outlet_id: uuid.UUID,
    ) -> None:
        order = make_order()

        with pytest.raises(NotFoundError):
            payment_service.list_payments(other_outlet_id, order.id)
