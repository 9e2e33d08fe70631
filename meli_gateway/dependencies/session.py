"""
Request-scoped dependencies binding a MercadoLibre client to one seller.
"""

from http import HTTPStatus
from typing import Annotated, Any

import httpx
from fastapi import Depends, HTTPException, Query

from meli_gateway.clients import MeliApiClient
from meli_gateway.clients.meli_oauth import OAuthTokenNotFoundError
from meli_gateway.models.tokens import SellerContext

from .clients import (
    get_meli_http_client,
    get_meli_oauth_client,
    get_meli_token_service,
    get_notification_bus,
)


def get_seller_context(
    token_service: Annotated[Any, Depends(get_meli_token_service)],
    user_id: str = Query(..., description="Seller on whose behalf the call is made."),
) -> SellerContext:
    """Load the seller's current token pair for the duration of a request."""
    try:
        return token_service.get_context(user_id)
    except OAuthTokenNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="MercadoLibre account not connected.",
        ) from exc


def get_meli_api_client(
    context: Annotated[SellerContext, Depends(get_seller_context)],
    http_client: Annotated[httpx.AsyncClient, Depends(get_meli_http_client)],
    oauth_client: Annotated[Any, Depends(get_meli_oauth_client)],
    token_service: Annotated[Any, Depends(get_meli_token_service)],
    notifier: Annotated[Any, Depends(get_notification_bus)],
) -> MeliApiClient:
    """Build a MercadoLibre client scoped to the current request's seller."""
    return MeliApiClient(
        context,
        http_client=http_client,
        oauth_client=oauth_client,
        token_store=token_service,
        notifier=notifier,
    )


__all__ = ["get_meli_api_client", "get_seller_context"]
