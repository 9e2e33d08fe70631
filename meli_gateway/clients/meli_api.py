"""
Authenticated client for the MercadoLibre REST API.

Every call carries the seller's bearer token. A 401 triggers exactly one
refresh exchange per originating request; on success the new pair is
persisted, announced on the notification bus and the request is sent again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

import httpx

from meli_gateway.clients.errors import (
    IntegrationRelinkRequired,
    TransportError,
    UpstreamError,
)
from meli_gateway.models.tokens import RefreshFailure, SellerContext
from meli_gateway.schemas.meli import OrderView, QuestionFilters, SendMessageOptions

if TYPE_CHECKING:
    from meli_gateway.clients.meli_oauth import MeliOAuthClient
    from meli_gateway.services.meli_tokens import MeliTokenService
    from meli_gateway.services.notifications import NotificationBus

logger = logging.getLogger(__name__)

TOKENS_UPDATED = "tokens.update"

DEFAULT_QUESTION_LIMIT = 25
QUESTIONS_API_VERSION = "4"


@dataclass(slots=True)
class OutboundRequest:
    """A request bound for MercadoLibre, remembered so it can be re-sent once."""

    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    retried: bool = False


class MeliApiClient:
    """Execute MercadoLibre calls as the seller held in ``context``."""

    REFRESH_STATUSES = frozenset({HTTPStatus.UNAUTHORIZED})

    def __init__(
        self,
        context: SellerContext,
        *,
        http_client: httpx.AsyncClient,
        oauth_client: "MeliOAuthClient",
        token_store: "MeliTokenService",
        notifier: "NotificationBus",
    ) -> None:
        self._context = context
        self._http = http_client
        self._oauth = oauth_client
        self._token_store = token_store
        self._notifier = notifier

    @property
    def seller_id(self) -> str:
        return self._context.seller_id

    @property
    def context(self) -> SellerContext:
        return self._context

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Send a request and return the successful response.

        Raises :class:`UpstreamError` for error statuses that cannot be
        recovered, :class:`IntegrationRelinkRequired` when the refresh exchange
        is rejected and :class:`TransportError` for network failures.
        """
        outbound = OutboundRequest(method.upper(), path, params=params, json=json)
        return await self._dispatch(outbound)

    def _authorize(self, outbound: OutboundRequest) -> None:
        outbound.headers["Authorization"] = f"Bearer {self._context.tokens.access_token}"

    async def _dispatch(self, outbound: OutboundRequest) -> httpx.Response:
        self._authorize(outbound)
        try:
            response = await self._http.request(
                outbound.method,
                outbound.path,
                params=outbound.params,
                json=outbound.json,
                headers=outbound.headers,
            )
        except httpx.HTTPError as exc:
            raise TransportError(
                f"{outbound.method} {outbound.path} failed: {exc}"
            ) from exc

        if response.is_success:
            return response
        if response.status_code not in self.REFRESH_STATUSES or outbound.retried:
            raise UpstreamError.from_response(response)
        return await self._refresh_and_retry(outbound)

    async def _refresh_and_retry(self, outbound: OutboundRequest) -> httpx.Response:
        outbound.retried = True
        logger.info(
            "Refreshing MercadoLibre token after %s %s returned 401",
            outbound.method,
            outbound.path,
            extra={"seller_id": self.seller_id},
        )

        result = await self._oauth.refresh_access_token(
            self._context.tokens.refresh_token
        )
        if isinstance(result, RefreshFailure):
            logger.warning(
                "MercadoLibre refresh rejected: %s",
                result.reason,
                extra={"seller_id": self.seller_id},
            )
            raise IntegrationRelinkRequired(reason=result.reason)

        tokens = result.tokens
        self._token_store.save_tokens(
            self.seller_id, tokens, expires_in=result.expires_in
        )
        self._context.tokens = tokens
        outbound.headers["Authorization"] = f"Bearer {tokens.access_token}"

        await self._notifier.publish(
            TOKENS_UPDATED, {"seller_id": self.seller_id, **tokens.as_payload()}
        )
        return await self._dispatch(outbound)

    async def _call(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Dispatch and hand upstream error responses back as values."""
        try:
            return await self.request(method, path, **kwargs)
        except UpstreamError as exc:
            if exc.response is None:
                raise
            return exc.response

    # === Questions ===

    async def get_questions_response_time(self) -> httpx.Response:
        return await self._call(
            "GET", f"/users/{self.seller_id}/questions/response_time"
        )

    async def get_questions(
        self, filters: Optional[QuestionFilters] = None
    ) -> httpx.Response:
        """Search the seller's questions; unanswered ones when no filters are given."""
        path, params = build_question_query(self.seller_id, filters)
        return await self._call("GET", path, params=params)

    async def answer_question(self, question_id: int, text: str) -> httpx.Response:
        return await self._call(
            "POST", "/answers", json={"question_id": question_id, "text": text}
        )

    async def delete_question(self, question_id: int) -> httpx.Response:
        return await self._call("DELETE", f"/questions/{question_id}")

    # === Items ===

    async def search_items(self, query: str) -> httpx.Response:
        return await self._call(
            "GET",
            f"/users/{self.seller_id}/items/search",
            params={"q": query, "status": "active"},
        )

    async def get_items(self) -> httpx.Response:
        return await self._call("GET", f"/users/{self.seller_id}/items/search")

    async def get_item(
        self, item_id: str, attributes: Optional[Iterable[str]] = None
    ) -> httpx.Response:
        params = None
        if attributes:
            params = {"attributes": ",".join(attributes)}
        return await self._call("GET", f"/items/{item_id}", params=params)

    async def publish_item(self, item: Dict[str, Any]) -> httpx.Response:
        return await self._call("POST", "/items", json=item)

    async def add_description(self, item_id: str, description: str) -> httpx.Response:
        return await self._call(
            "POST", f"/items/{item_id}/description", json={"plain_text": description}
        )

    async def pause_item(self, item_id: str) -> httpx.Response:
        return await self._call("PUT", f"/items/{item_id}", json={"status": "paused"})

    async def activate_item(self, item_id: str) -> httpx.Response:
        return await self._call("PUT", f"/items/{item_id}", json={"status": "active"})

    async def change_item_stock(self, item_id: str, quantity: int) -> httpx.Response:
        return await self._call(
            "PUT", f"/items/{item_id}", json={"available_quantity": quantity}
        )

    # === Users ===

    async def get_user_info(self, user_id: int | str) -> httpx.Response:
        return await self._call("GET", f"/users/{user_id}")

    # === Orders ===

    async def get_orders(self, view: Optional[OrderView] = None) -> httpx.Response:
        path = f"/orders/search/{view}" if view else "/orders/search"
        return await self._call(
            "GET", path, params={"seller": self.seller_id, "sort": "date_desc"}
        )

    async def get_order(self, order_id: int | str) -> httpx.Response:
        return await self._call("GET", f"/orders/{order_id}")

    # === Messages ===

    async def get_order_messages(self, pack_id: int | str) -> httpx.Response:
        return await self._call(
            "GET",
            f"/messages/packs/{pack_id}/sellers/{self.seller_id}",
            params={"mark_as_read": "false", "tag": "post_sale"},
        )

    async def send_message(self, options: SendMessageOptions) -> httpx.Response:
        return await self._call(
            "POST",
            f"/messages/packs/{options.pack_id}/sellers/{self.seller_id}",
            params={"tag": "post_sale"},
            json={
                "from": {"user_id": self.seller_id},
                "to": {"user_id": options.buyer_id},
                "text": options.message,
            },
        )

    async def get_resource(self, resource: str) -> httpx.Response:
        """Fetch any resource path, e.g. the one named in a notification."""
        return await self._call("GET", resource)


def build_question_query(
    seller_id: str, filters: Optional[QuestionFilters] = None
) -> tuple[str, Dict[str, str]]:
    """Return the path and query for a question search."""
    filters = filters or QuestionFilters()

    if filters.question_id is not None:
        return f"/questions/{filters.question_id}", {"api_version": QUESTIONS_API_VERSION}

    params: Dict[str, str] = {}
    if filters.from_user is not None and filters.item:
        params["from"] = str(filters.from_user)
        params["item"] = filters.item
    else:
        params["seller_id"] = str(seller_id)

    params["status"] = filters.status or "UNANSWERED"

    if filters.sort is not None:
        params["sort_types"] = filters.sort.order
        params["sort_fields"] = filters.sort.fields

    params["limit"] = str(
        filters.limit if filters.limit is not None else DEFAULT_QUESTION_LIMIT
    )
    params["offset"] = str(filters.offset if filters.offset is not None else 0)
    params["api_version"] = QUESTIONS_API_VERSION
    return "/questions/search", params


__all__ = [
    "MeliApiClient",
    "OutboundRequest",
    "TOKENS_UPDATED",
    "build_question_query",
]
