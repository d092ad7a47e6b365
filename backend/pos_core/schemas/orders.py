"""
Order command and response schemas.

Request models check shapes and types only; business rules (positive
quantities, known enum values, catering requirements) are enforced by the
services so that every rejection carries the core's own error messages.
Response models render money as canonical two-decimal strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_serializer,
    field_validator,
)

from pos_core.core.exceptions import ValidationError
from pos_core.services.pricing import money

CommandT = TypeVar("CommandT", bound=BaseModel)


def parse_command(model: Type[CommandT], data: Union[CommandT, dict[str, Any]]) -> CommandT:
    """
    Validate raw input into a command model.

    Raises:
        ValidationError: With the first field error as message
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid input")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        raise ValidationError(
            f"{location}: {message}" if location else message,
            errors=e.errors(include_url=False, include_context=False),
        ) from None


def _reject_float(value: Any) -> Any:
    if isinstance(value, float):
        raise ValueError("amounts must be given as decimal strings or integers")
    return value


class ModifierRequest(BaseModel):
    """Modifier picked for a line."""

    modifier_id: UUID
    quantity: int = 1


class OrderItemRequest(BaseModel):
    """Line item to price and add."""

    model_config = ConfigDict(validate_assignment=True)

    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: int
    modifiers: list[ModifierRequest] = Field(default_factory=list)
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("discount_value", mode="before")
    @classmethod
    def reject_float(cls, v: Any) -> Any:
        return _reject_float(v)


class OrderCreateRequest(BaseModel):
    """Request to open a new order."""

    model_config = ConfigDict(validate_assignment=True)

    outlet_id: UUID
    created_by: UUID
    order_type: str
    items: list[OrderItemRequest] = Field(default_factory=list)
    table_number: Optional[str] = Field(None, max_length=20)
    customer_id: Optional[UUID] = None
    notes: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    catering_date: Optional[datetime] = None
    catering_dp_amount: Optional[Decimal] = None
    delivery_platform: Optional[str] = Field(None, max_length=50)
    delivery_address: Optional[str] = None

    @field_validator(
        "discount_value", "tax_amount", "catering_dp_amount", mode="before"
    )
    @classmethod
    def reject_float(cls, v: Any) -> Any:
        return _reject_float(v)


class OrderItemUpdateRequest(BaseModel):
    """New quantity and notes for an existing line."""

    quantity: int
    notes: Optional[str] = Field(None, max_length=1000)


class OrderItemModifierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    modifier_id: UUID
    quantity: int
    unit_price: Decimal

    @field_serializer("unit_price")
    def serialize_money(self, value: Decimal) -> str:
        return money.format_money(value)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: int
    unit_price: Decimal
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    discount_amount: Decimal
    subtotal: Decimal
    notes: Optional[str] = None
    status: str
    station: Optional[str] = None
    modifiers: list[OrderItemModifierResponse] = Field(default_factory=list)

    @field_validator("discount_type", "status", "station", mode="before")
    @classmethod
    def enum_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)

    @field_serializer("unit_price", "discount_value", "discount_amount", "subtotal")
    def serialize_money(self, value: Optional[Decimal]) -> Optional[str]:
        return money.format_money(value) if value is not None else None


class OrderResponse(BaseModel):
    """Order as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    outlet_id: UUID
    order_number: str
    order_type: str
    status: str
    table_number: Optional[str] = None
    customer_id: Optional[UUID] = None
    notes: Optional[str] = None
    subtotal: Decimal
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    catering_date: Optional[datetime] = None
    catering_status: Optional[str] = None
    catering_dp_amount: Optional[Decimal] = None
    delivery_platform: Optional[str] = None
    delivery_address: Optional[str] = None
    created_by: UUID
    completed_at: Optional[datetime] = None
    items: list[OrderItemResponse] = Field(default_factory=list)

    @field_validator(
        "order_type", "status", "discount_type", "catering_status", mode="before"
    )
    @classmethod
    def enum_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)

    @field_serializer(
        "subtotal",
        "discount_value",
        "discount_amount",
        "tax_amount",
        "total_amount",
        "catering_dp_amount",
    )
    def serialize_money(self, value: Optional[Decimal]) -> Optional[str]:
        return money.format_money(value) if value is not None else None
