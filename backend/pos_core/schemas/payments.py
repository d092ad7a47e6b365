"""
Payment command and response schemas.

Amount rules (positive amount, cash tendered) are checked by the payment
service in a fixed order; these models only check shapes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from pos_core.services.pricing import money


class PaymentCreateRequest(BaseModel):
    """Request to add a payment to an order."""

    outlet_id: UUID
    order_id: UUID
    payment_method: str
    amount: Decimal
    amount_received: Optional[Decimal] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    processed_by: UUID

    @field_validator("amount", "amount_received", mode="before")
    @classmethod
    def reject_float(cls, v: Any) -> Any:
        if isinstance(v, float):
            raise ValueError("amounts must be given as decimal strings or integers")
        return v


class PaymentResponse(BaseModel):
    """Payment as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    payment_method: str
    amount: Decimal
    status: str
    reference_number: Optional[str] = None
    amount_received: Optional[Decimal] = None
    change_amount: Optional[Decimal] = None
    processed_by: UUID
    processed_at: datetime

    @field_validator("payment_method", "status", mode="before")
    @classmethod
    def enum_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)

    @field_serializer("amount", "amount_received", "change_amount")
    def serialize_money(self, value: Optional[Decimal]) -> Optional[str]:
        return money.format_money(value) if value is not None else None
