from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal
from payment_service.models import PaymentStatus


class ChargeRequest(BaseModel):
    # presence is checked by the charge workflow so it can answer VALIDATION_ERROR
    order_id: Optional[str] = Field(None, examples=["order-1001"])
    amount: Optional[Decimal] = Field(None, examples=["499.99"])
    currency: Optional[str] = Field(None, examples=["INR"])
    payment_method: Optional[str] = Field(None, examples=["CARD"])

    @field_validator("order_id", mode="before")
    @classmethod
    def coerce_order_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class RefundRequest(BaseModel):
    payment_id: Optional[str] = None
    amount: Optional[Decimal] = None

    @field_validator("payment_id", mode="before")
    @classmethod
    def coerce_payment_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    order_id: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    payment_method: str
    idempotency_key: str
    created_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return f"{amount:.2f}"


class RefundRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    refund_id: str
    payment_id: str
    amount: Decimal
    created_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return f"{amount:.2f}"


class ChargeResponse(BaseModel):
    idempotent: Optional[bool] = None
    message: str
    payment: PaymentRead


class RefundResponse(BaseModel):
    message: str
    refund: RefundRead


class PaymentPage(BaseModel):
    page: int
    limit: int
    total: int
    data: List[PaymentRead]


class HealthResponse(BaseModel):
    status: str
    service: str
    time: datetime


class ErrorResponse(BaseModel):
    code: str
    message: str
