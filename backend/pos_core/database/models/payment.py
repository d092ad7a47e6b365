"""
Payment model for counter payments recorded against an order.

A payment row is written once and never updated. Only COMPLETED payments
count towards the amount paid on an order.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_core.database.base import Base, Money, UUIDMixin
from pos_core.services.payments.enums import PaymentMethod, PaymentStatus

if TYPE_CHECKING:
    from pos_core.database.models.order import Order


class Payment(Base, UUIDMixin):
    """
    Payment against an order.

    Attributes:
        order_id: Order being paid
        payment_method: CASH, QRIS or TRANSFER
        amount: Amount applied to the order balance
        status: COMPLETED for counter payments
        reference_number: Transfer or QR reference, if any
        amount_received: Cash handed over, CASH only
        change_amount: amount_received - amount, CASH only
        processed_by: Cashier who took the payment
        processed_at: Time the payment was recorded
    """

    __tablename__ = "payments"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method", create_constraint=True),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Money(), nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status", create_constraint=True),
        nullable=False,
        default=PaymentStatus.COMPLETED,
    )

    reference_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    amount_received: Mapped[Optional[Decimal]] = mapped_column(Money(), nullable=True)

    change_amount: Mapped[Optional[Decimal]] = mapped_column(Money(), nullable=True)

    processed_by: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    order: Mapped["Order"] = relationship("Order", back_populates="payments")

    __table_args__ = (
        Index("ix_payments_order", "order_id"),
        Index("ix_payments_method", "payment_method"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "change_amount IS NULL OR change_amount >= 0",
            name="ck_payments_change_non_negative",
        ),
        {"comment": "Payments applied to order balances"},
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, order_id={self.order_id}, "
            f"method={self.payment_method.value if self.payment_method else None}, "
            f"amount={self.amount})>"
        )
