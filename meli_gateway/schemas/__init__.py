"""Public schema exports."""

from .auth import OAuthCallbackPayload, RelinkRequiredResponse
from .meli import (
    AnswerQuestionRequest,
    ItemDescriptionRequest,
    ItemStockRequest,
    OrderView,
    PublishItemRequest,
    QuestionFilters,
    QuestionSort,
    SendMessageOptions,
)
from .orders import Order, OrderCreateRequest, OrderLine, OrderUpdateRequest

__all__ = [
    "AnswerQuestionRequest",
    "ItemDescriptionRequest",
    "ItemStockRequest",
    "OAuthCallbackPayload",
    "Order",
    "OrderCreateRequest",
    "OrderLine",
    "OrderUpdateRequest",
    "OrderView",
    "PublishItemRequest",
    "QuestionFilters",
    "QuestionSort",
    "RelinkRequiredResponse",
    "SendMessageOptions",
]
