"""Payment method and payment status enums."""

from pos_core.services.orders.enums import ParsableEnum


class PaymentMethod(ParsableEnum):
    """Tender accepted at the counter.

    Only CASH involves an amount received from the customer and change.
    """

    CASH = "CASH"
    QRIS = "QRIS"
    TRANSFER = "TRANSFER"

    @classmethod
    def _label(cls) -> str:
        return "payment_method"

    def requires_amount_received(self) -> bool:
        return self == PaymentMethod.CASH


class PaymentStatus(ParsableEnum):
    """Payment record status.

    Payments added through the counter are recorded as COMPLETED. PENDING and
    FAILED exist for externally settled tenders and never count towards the
    amount paid.
    """

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @classmethod
    def _label(cls) -> str:
        return "payment status"

    def counts_towards_balance(self) -> bool:
        return self == PaymentStatus.COMPLETED
