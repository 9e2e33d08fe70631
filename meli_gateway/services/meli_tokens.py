"""
Persistence of MercadoLibre token pairs per seller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from meli_gateway.clients.meli_oauth import OAuthTokenNotFoundError
from meli_gateway.clients.sqlite_store import SQLiteStore
from meli_gateway.models.tokens import SellerContext, TokenPair
from meli_gateway.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

TOKEN_SORT_KEY = "oauth#meli"


def seller_partition_key(seller_id: str) -> str:
    return f"seller#{seller_id}"


class MeliTokenService:
    """Read and write the encrypted token pair linked to a seller."""

    def __init__(self, store: SQLiteStore, token_cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = token_cipher

    def get_tokens(self, seller_id: str) -> TokenPair:
        """Return the seller's current pair or raise ``OAuthTokenNotFoundError``."""
        record = self._store.get_item(
            partition_key=seller_partition_key(seller_id),
            sort_key=TOKEN_SORT_KEY,
        )
        if not record:
            raise OAuthTokenNotFoundError(
                f"No MercadoLibre token stored for seller {seller_id}."
            )
        if not record.get("access_token_encrypted") or not record.get(
            "refresh_token_encrypted"
        ):
            raise OAuthTokenNotFoundError(
                "Stored MercadoLibre token is missing required fields."
            )
        return self._cipher.decrypt_pair(record)

    def get_context(self, seller_id: str) -> SellerContext:
        return SellerContext(seller_id=seller_id, tokens=self.get_tokens(seller_id))

    def save_tokens(
        self,
        seller_id: str,
        tokens: TokenPair,
        *,
        expires_in: Optional[int] = None,
    ) -> None:
        """Replace both tokens of the seller in a single write."""
        now = datetime.now(timezone.utc)
        existing = self._store.get_item(
            partition_key=seller_partition_key(seller_id),
            sort_key=TOKEN_SORT_KEY,
        )
        record = {
            "pk": seller_partition_key(seller_id),
            "sk": TOKEN_SORT_KEY,
            "seller_id": seller_id,
            "provider": "mercadolibre",
            **self._cipher.encrypt_pair(tokens),
            "expires_at": (now + timedelta(seconds=expires_in)).isoformat()
            if expires_in
            else None,
            "created_at": existing.get("created_at") if existing else now.isoformat(),
            "updated_at": now.isoformat(),
        }
        self._store.put_item(record)
        logger.info("Stored MercadoLibre tokens", extra={"seller_id": seller_id})

    def delete_tokens(self, seller_id: str) -> bool:
        return self._store.delete_item(
            partition_key=seller_partition_key(seller_id),
            sort_key=TOKEN_SORT_KEY,
        )


__all__ = ["MeliTokenService", "TOKEN_SORT_KEY", "seller_partition_key"]
