"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

import httpx

from meli_gateway.clients import MeliOAuthClient, OAuthStateEncoder, SQLiteStore
from meli_gateway.core.config import get_settings
from meli_gateway.services import (
    MeliTokenService,
    NotificationBus,
    OrderService,
    TokenCipherService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the MercadoLibre client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.meli.client_secret)


@lru_cache()
def get_meli_oauth_client() -> MeliOAuthClient:
    """Create a singleton MercadoLibre OAuth client."""
    return MeliOAuthClient(_settings().meli)


@lru_cache()
def get_meli_http_client() -> httpx.AsyncClient:
    """Provide the pooled HTTP client used for MercadoLibre API calls."""
    meli = _settings().meli
    return httpx.AsyncClient(
        base_url=meli.api_url,
        timeout=meli.http_timeout,
        headers={"accept": "application/json"},
    )


async def close_meli_http_client() -> None:
    """Close the pooled HTTP client if it was ever created."""
    if get_meli_http_client.cache_info().currsize:
        await get_meli_http_client().aclose()
        get_meli_http_client.cache_clear()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    return SQLiteStore(_settings().database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.meli.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_meli_token_service() -> MeliTokenService:
    """Provide the seller token store."""
    return MeliTokenService(
        store=get_sqlite_store(),
        token_cipher=get_token_cipher_service(),
    )


@lru_cache()
def get_notification_bus() -> NotificationBus:
    """Provide the process-wide notification bus."""
    return NotificationBus()


def get_order_service() -> OrderService:
    """Build an order service over the shared record store."""
    return OrderService(get_sqlite_store())


__all__ = [
    "close_meli_http_client",
    "get_meli_http_client",
    "get_meli_oauth_client",
    "get_meli_token_service",
    "get_notification_bus",
    "get_oauth_state_encoder",
    "get_order_service",
    "get_sqlite_store",
    "get_token_cipher_service",
]
