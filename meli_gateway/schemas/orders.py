"""
Pydantic models for orders kept by the gateway.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

OrderStatus = Literal["pending", "paid", "shipped", "delivered", "cancelled"]


class OrderLine(BaseModel):
    item_id: str = Field(..., description="MercadoLibre item identifier, e.g. MLA123.")
    title: Optional[str] = None
    quantity: int = Field(1, ge=1)
    unit_price: float = Field(..., ge=0)


class OrderCreateRequest(BaseModel):
    """Payload for registering an order."""

    meli_order_id: Optional[str] = Field(
        None, description="Matching MercadoLibre order, when known."
    )
    buyer_id: Optional[str] = None
    status: OrderStatus = "pending"
    currency_id: str = Field("ARS", min_length=3, max_length=3)
    items: List[OrderLine] = Field(default_factory=list)
    notes: Optional[str] = None


class OrderUpdateRequest(BaseModel):
    """Partial update; omitted fields are left untouched."""

    meli_order_id: Optional[str] = None
    buyer_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    currency_id: Optional[str] = Field(None, min_length=3, max_length=3)
    items: Optional[List[OrderLine]] = None
    notes: Optional[str] = None

    @field_validator("status", "currency_id", "items")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class Order(BaseModel):
    order_id: str
    seller_id: str
    meli_order_id: Optional[str] = None
    buyer_id: Optional[str] = None
    status: OrderStatus
    currency_id: str
    items: List[OrderLine] = Field(default_factory=list)
    total_amount: float = 0.0
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


__all__ = [
    "Order",
    "OrderCreateRequest",
    "OrderLine",
    "OrderStatus",
    "OrderUpdateRequest",
]
