"""Expose constructed client wrappers."""

from .errors import (
    IntegrationRelinkRequired,
    MeliClientError,
    TransportError,
    UpstreamError,
)
from .meli_api import TOKENS_UPDATED, MeliApiClient
from .meli_oauth import MeliOAuthClient, OAuthStateEncoder
from .sqlite_store import SQLiteStore

__all__ = [
    "IntegrationRelinkRequired",
    "MeliApiClient",
    "MeliClientError",
    "MeliOAuthClient",
    "OAuthStateEncoder",
    "SQLiteStore",
    "TOKENS_UPDATED",
    "TransportError",
    "UpstreamError",
]
