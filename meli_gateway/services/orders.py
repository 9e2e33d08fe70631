"""
Service helpers for the orders the gateway records per seller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import uuid4

from meli_gateway.clients.sqlite_store import SQLiteStore
from meli_gateway.schemas.orders import (
    Order,
    OrderCreateRequest,
    OrderLine,
    OrderUpdateRequest,
)
from meli_gateway.services.meli_tokens import seller_partition_key

ORDER_SORT_KEY_PREFIX = "order#"


class OrderNotFoundError(Exception):
    """Raised when an order does not exist for the seller."""


class OrderService:
    """Create, read, update and delete orders in the record store."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def create(self, *, seller_id: str, request: OrderCreateRequest) -> Order:
        now = datetime.now(tz=timezone.utc)
        order = Order(
            order_id=uuid4().hex,
            seller_id=seller_id,
            meli_order_id=request.meli_order_id,
            buyer_id=request.buyer_id,
            status=request.status,
            currency_id=request.currency_id,
            items=request.items,
            total_amount=_total(request.items),
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )
        self._save(order)
        return order

    def list(self, *, seller_id: str) -> List[Order]:
        items = self._store.list_items(
            partition_key=seller_partition_key(seller_id),
            sort_key_prefix=ORDER_SORT_KEY_PREFIX,
        )
        orders = [_from_record(item) for item in items]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def get(self, *, seller_id: str, order_id: str) -> Order:
        item = self._store.get_item(
            partition_key=seller_partition_key(seller_id),
            sort_key=f"{ORDER_SORT_KEY_PREFIX}{order_id}",
        )
        if not item:
            raise OrderNotFoundError(order_id)
        return _from_record(item)

    def update(
        self, *, seller_id: str, order_id: str, request: OrderUpdateRequest
    ) -> Order:
        order = self.get(seller_id=seller_id, order_id=order_id)
        changes = request.model_dump(exclude_unset=True)
        if "items" in changes:
            changes["items"] = request.items
            changes["total_amount"] = _total(changes["items"])
        changes["updated_at"] = datetime.now(tz=timezone.utc)
        updated = Order.model_validate({**order.model_dump(), **changes})
        self._save(updated)
        return updated

    def delete(self, *, seller_id: str, order_id: str) -> None:
        removed = self._store.delete_item(
            partition_key=seller_partition_key(seller_id),
            sort_key=f"{ORDER_SORT_KEY_PREFIX}{order_id}",
        )
        if not removed:
            raise OrderNotFoundError(order_id)

    def _save(self, order: Order) -> None:
        item: Dict[str, Any] = order.model_dump(mode="json")
        item["pk"] = seller_partition_key(order.seller_id)
        item["sk"] = f"{ORDER_SORT_KEY_PREFIX}{order.order_id}"
        self._store.put_item(item)


def _total(lines: List[OrderLine]) -> float:
    return round(sum(line.quantity * line.unit_price for line in lines), 2)


def _from_record(item: Dict[str, Any]) -> Order:
    return Order.model_validate(
        {key: value for key, value in item.items() if key not in ("pk", "sk")}
    )


__all__ = ["OrderNotFoundError", "OrderService"]
