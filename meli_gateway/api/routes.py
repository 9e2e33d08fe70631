"""
FastAPI routes for the MercadoLibre gateway.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any, List, Literal, Optional

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from meli_gateway.clients import MeliApiClient
from meli_gateway.clients.meli_oauth import OAuthTokenExchangeError
from meli_gateway.dependencies import (
    get_app_settings,
    get_meli_api_client,
    get_meli_oauth_client,
    get_meli_token_service,
    get_oauth_state_encoder,
    get_order_service,
)
from meli_gateway.schemas import (
    AnswerQuestionRequest,
    ItemDescriptionRequest,
    ItemStockRequest,
    OAuthCallbackPayload,
    Order,
    OrderCreateRequest,
    OrderUpdateRequest,
    OrderView,
    PublishItemRequest,
    QuestionFilters,
    QuestionSort,
    SendMessageOptions,
)
from meli_gateway.schemas.meli import QuestionStatus
from meli_gateway.services.orders import OrderNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)

MeliClient = Annotated[MeliApiClient, Depends(get_meli_api_client)]


def _relay(response: httpx.Response) -> Response:
    """Mirror an upstream response, status code included."""
    if not response.content:
        return Response(status_code=response.status_code)
    try:
        payload = response.json()
    except ValueError:
        return Response(
            content=response.content,
            status_code=response.status_code,
            media_type=response.headers.get("content-type"),
        )
    return JSONResponse(status_code=response.status_code, content=payload)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


# === Account linking ===


@router.get("/auth/meli/authorize", status_code=HTTPStatus.OK)
async def start_meli_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_meli_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    user_id: str = Query(..., description="Seller identifier initiating the link."),
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to once the account is linked.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the MercadoLibre consent screen.",
    ),
) -> Any:
    """Kick off the link flow by generating a state token and authorization URL."""
    state_payload = {
        "nonce": uuid.uuid4().hex,
        "redirect_to": redirect_to,
        "user_id": user_id,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    state = state_encoder.encode(state_payload)
    authorization_url = oauth_client.build_authorization_url(state=state)

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url, "state": state}


@router.post("/auth/meli/callback", status_code=HTTPStatus.OK)
async def handle_meli_oauth_callback(
    payload: OAuthCallbackPayload,
    oauth_client: Annotated[Any, Depends(get_meli_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_service: Annotated[Any, Depends(get_meli_token_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Complete the code exchange, store the seller's tokens and return redirect metadata."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )
    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if now - issued_at > timedelta(seconds=settings.oauth.state_ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    user_id = state_data.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing user identifier in state token.",
        )

    try:
        tokens, expires_in, meli_user_id = await oauth_client.exchange_authorization_code(
            payload.code
        )
    except OAuthTokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    token_service.save_tokens(user_id, tokens, expires_in=expires_in)

    return {
        "status": "connected",
        "meli_user_id": meli_user_id,
        "redirect_to": state_data.get("redirect_to"),
    }


@router.get("/auth/meli/callback", status_code=HTTPStatus.OK)
async def handle_meli_oauth_callback_get(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_meli_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_service: Annotated[Any, Depends(get_meli_token_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by MercadoLibre."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    result = await handle_meli_oauth_callback(
        payload=OAuthCallbackPayload(state=state, code=code),
        oauth_client=oauth_client,
        state_encoder=state_encoder,
        token_service=token_service,
        settings=settings,
    )

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    redirect_target = result.get("redirect_to") or settings.frontend_base_url

    if redirect_target and (redirect or wants_html):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=result)


@router.delete("/auth/meli", status_code=HTTPStatus.NO_CONTENT)
async def unlink_meli_account(
    token_service: Annotated[Any, Depends(get_meli_token_service)],
    user_id: str = Query(..., description="Seller unlinking the integration."),
) -> Response:
    if not token_service.delete_tokens(user_id):
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="MercadoLibre account not connected."
        )
    return Response(status_code=HTTPStatus.NO_CONTENT)


# === MercadoLibre proxy: questions ===


@router.get("/meli/questions")
async def list_questions(
    client: MeliClient,
    question_id: Optional[int] = Query(None, description="Fetch a single question."),
    from_user: Optional[str] = Query(None, alias="from", description="Asking user id."),
    item: Optional[str] = Query(None, description="Item id, combined with 'from'."),
    status: Optional[QuestionStatus] = Query(None),
    sort_order: Optional[Literal["ASC", "DESC"]] = Query(None),
    sort_fields: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=50),
    offset: Optional[int] = Query(None, ge=0),
) -> Response:
    sort = None
    if sort_order or sort_fields:
        sort = QuestionSort(
            order=sort_order or "DESC", fields=sort_fields or "date_created"
        )
    filters = QuestionFilters(
        question_id=question_id,
        from_user=from_user,
        item=item,
        status=status,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    return _relay(await client.get_questions(filters))


@router.get("/meli/questions/response-time")
async def get_questions_response_time(client: MeliClient) -> Response:
    return _relay(await client.get_questions_response_time())


@router.post("/meli/questions/{question_id}/answer")
async def answer_question(
    question_id: int, payload: AnswerQuestionRequest, client: MeliClient
) -> Response:
    return _relay(await client.answer_question(question_id, payload.text))


@router.delete("/meli/questions/{question_id}")
async def delete_question(question_id: int, client: MeliClient) -> Response:
    return _relay(await client.delete_question(question_id))


# === MercadoLibre proxy: items ===


@router.get("/meli/items")
async def list_items(client: MeliClient) -> Response:
    return _relay(await client.get_items())


@router.get("/meli/items/search")
async def search_items(
    client: MeliClient, q: str = Query(..., min_length=1)
) -> Response:
    return _relay(await client.search_items(q))


@router.get("/meli/items/{item_id}")
async def get_item(
    item_id: str,
    client: MeliClient,
    attributes: Optional[List[str]] = Query(None),
) -> Response:
    return _relay(await client.get_item(item_id, attributes))


@router.post("/meli/items")
async def publish_item(payload: PublishItemRequest, client: MeliClient) -> Response:
    return _relay(
        await client.publish_item(payload.model_dump(mode="json", exclude_none=True))
    )


@router.post("/meli/items/{item_id}/description")
async def add_item_description(
    item_id: str, payload: ItemDescriptionRequest, client: MeliClient
) -> Response:
    return _relay(await client.add_description(item_id, payload.plain_text))


@router.post("/meli/items/{item_id}/pause")
async def pause_item(item_id: str, client: MeliClient) -> Response:
    return _relay(await client.pause_item(item_id))


@router.post("/meli/items/{item_id}/activate")
async def activate_item(item_id: str, client: MeliClient) -> Response:
    return _relay(await client.activate_item(item_id))


@router.put("/meli/items/{item_id}/stock")
async def change_item_stock(
    item_id: str, payload: ItemStockRequest, client: MeliClient
) -> Response:
    return _relay(await client.change_item_stock(item_id, payload.available_quantity))


# === MercadoLibre proxy: users, orders, messages ===


@router.get("/meli/users/{meli_user_id}")
async def get_user_info(meli_user_id: int, client: MeliClient) -> Response:
    return _relay(await client.get_user_info(meli_user_id))


@router.get("/meli/orders")
async def list_meli_orders(
    client: MeliClient, view: Optional[OrderView] = Query(None)
) -> Response:
    return _relay(await client.get_orders(view))


@router.get("/meli/orders/{order_id}")
async def get_meli_order(order_id: int, client: MeliClient) -> Response:
    return _relay(await client.get_order(order_id))


@router.get("/meli/orders/{pack_id}/messages")
async def get_order_messages(pack_id: int, client: MeliClient) -> Response:
    return _relay(await client.get_order_messages(pack_id))


@router.post("/meli/messages")
async def send_message(payload: SendMessageOptions, client: MeliClient) -> Response:
    return _relay(await client.send_message(payload))


@router.get("/meli/resource")
async def get_resource(
    client: MeliClient,
    path: str = Query(..., description="Resource path, e.g. /orders/123."),
) -> Response:
    if not path.startswith("/") or "://" in path:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Resource path must be relative to the MercadoLibre API.",
        )
    return _relay(await client.get_resource(path))


# === Local orders ===


@router.post("/orders", response_model=Order, status_code=HTTPStatus.CREATED)
async def create_order(
    payload: OrderCreateRequest,
    orders: Annotated[Any, Depends(get_order_service)],
    user_id: str = Query(..., description="Seller owning the order."),
) -> Order:
    return orders.create(seller_id=user_id, request=payload)


@router.get("/orders", response_model=List[Order])
async def list_orders(
    orders: Annotated[Any, Depends(get_order_service)],
    user_id: str = Query(..., description="Seller owning the orders."),
) -> List[Order]:
    return orders.list(seller_id=user_id)


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str,
    orders: Annotated[Any, Depends(get_order_service)],
    user_id: str = Query(..., description="Seller owning the order."),
) -> Order:
    try:
        return orders.get(seller_id=user_id, order_id=order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Order not found.") from exc


@router.patch("/orders/{order_id}", response_model=Order)
async def update_order(
    order_id: str,
    orders: Annotated[Any, Depends(get_order_service)],
    payload: OrderUpdateRequest = Body(...),
    user_id: str = Query(..., description="Seller owning the order."),
) -> Order:
    try:
        return orders.update(seller_id=user_id, order_id=order_id, request=payload)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Order not found.") from exc


@router.delete("/orders/{order_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_order(
    order_id: str,
    orders: Annotated[Any, Depends(get_order_service)],
    user_id: str = Query(..., description="Seller owning the order."),
) -> Response:
    try:
        orders.delete(seller_id=user_id, order_id=order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Order not found.") from exc
    return Response(status_code=HTTPStatus.NO_CONTENT)
