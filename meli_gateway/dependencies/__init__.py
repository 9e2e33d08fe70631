"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    close_meli_http_client,
    get_meli_http_client,
    get_meli_oauth_client,
    get_meli_token_service,
    get_notification_bus,
    get_oauth_state_encoder,
    get_order_service,
    get_sqlite_store,
    get_token_cipher_service,
)
from .config import get_app_settings
from .session import get_meli_api_client, get_seller_context

__all__ = [
    "close_meli_http_client",
    "get_app_settings",
    "get_meli_api_client",
    "get_meli_http_client",
    "get_meli_oauth_client",
    "get_meli_token_service",
    "get_notification_bus",
    "get_oauth_state_encoder",
    "get_order_service",
    "get_seller_context",
    "get_sqlite_store",
    "get_token_cipher_service",
]
