"""
Pydantic models describing calls proxied to the MercadoLibre API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

QuestionStatus = Literal[
    "UNANSWERED",
    "ANSWERED",
    "CLOSED_UNANSWERED",
    "UNDER_REVIEW",
    "BANNED",
    "DELETED",
    "DISABLED",
]

OrderView = Literal["recent", "pending", "archived"]


class QuestionSort(BaseModel):
    """Sort order forwarded as ``sort_types``/``sort_fields``."""

    order: Literal["ASC", "DESC"] = "DESC"
    fields: str = Field("date_created", description="Comma separated sort fields.")


class QuestionFilters(BaseModel):
    """
    Filters for the seller's question search.

    Only one filter is honoured at a time, except ``from_user`` together with
    ``item``. ``question_id`` overrides everything else.
    """

    model_config = ConfigDict(populate_by_name=True)

    question_id: Optional[int] = None
    from_user: Optional[Union[int, str]] = Field(None, alias="from")
    item: Optional[str] = None
    status: Optional[QuestionStatus] = None
    sort: Optional[QuestionSort] = None
    limit: Optional[int] = Field(None, ge=1, le=50)
    offset: Optional[int] = Field(None, ge=0)


class SendMessageOptions(BaseModel):
    """Post-sale message sent to a buyer within an order pack."""

    pack_id: Union[int, str] = Field(..., description="Order pack (message group) id.")
    buyer_id: Union[int, str]
    message: str = Field(..., min_length=1, max_length=350)


class AnswerQuestionRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class ItemDescriptionRequest(BaseModel):
    plain_text: str = Field(..., min_length=1)


class ItemStockRequest(BaseModel):
    available_quantity: int = Field(..., ge=0)


class PublishItemRequest(BaseModel):
    """Listing payload forwarded as-is to ``POST /items``."""

    model_config = ConfigDict(extra="allow")

    title: str
    category_id: str
    price: float
    currency_id: str
    available_quantity: int
    buying_mode: str = "buy_it_now"
    listing_type_id: str
    condition: Optional[str] = None
    pictures: List[Dict[str, Any]] = Field(default_factory=list)
    attributes: List[Dict[str, Any]] = Field(default_factory=list)


__all__ = [
    "AnswerQuestionRequest",
    "ItemDescriptionRequest",
    "ItemStockRequest",
    "OrderView",
    "PublishItemRequest",
    "QuestionFilters",
    "QuestionSort",
    "QuestionStatus",
    "SendMessageOptions",
]
