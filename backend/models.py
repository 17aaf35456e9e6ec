"""
Pydantic models for request/response validation.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.enums import OrderStatus


class ApiModel(BaseModel):
    """Shared base: allows construction by Python name or alias, and from ORM rows."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Requests ────────────────────────────────────────────────────────

class OrderItemRequest(ApiModel):
    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(1, ge=1, le=1000)


class OrderCreateRequest(ApiModel):
    """Empty item lists are accepted here and rejected by the service as empty_order."""
    items: List[OrderItemRequest] = Field(default_factory=list)


class OrderStatusUpdateRequest(ApiModel):
    status: OrderStatus
    note: Optional[str] = Field(default=None, max_length=500)


class OrderCancelRequest(ApiModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class PaymentRejectRequest(ApiModel):
    reason: Optional[str] = Field(default=None, max_length=500)


# ── Responses ───────────────────────────────────────────────────────

class OrderItemResponse(ApiModel):
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal


class PaymentResponse(ApiModel):
    id: int
    order_id: int
    user_id: int
    amount: Decimal
    status: str
    proof_url: Optional[str] = None
    reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class OrderResponse(ApiModel):
    id: int
    user_id: int
    total_price: Decimal
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    payment: Optional[PaymentResponse] = None


class StatusHistoryResponse(ApiModel):
    id: int
    order_id: int
    from_status: Optional[str] = None
    to_status: str
    changed_by: str
    note: Optional[str] = None
    created_at: datetime


def dump_order(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


def dump_payment(payment) -> dict:
    return PaymentResponse.model_validate(payment).model_dump(mode="json")


def dump_history(entry) -> dict:
    return StatusHistoryResponse.model_validate(entry).model_dump(mode="json")
