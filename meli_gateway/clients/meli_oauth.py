"""
MercadoLibre OAuth utilities.

These helpers manage the seller link flow and the token refresh exchange.
"""

from __future__ import annotations

import base64
import hmac
import json
import logging
from hashlib import sha256
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx

from fastapi import HTTPException, status

from meli_gateway.clients.errors import TransportError, decode_payload
from meli_gateway.core.config import MeliSettings
from meli_gateway.models.tokens import (
    RefreshFailure,
    RefreshResult,
    RefreshSuccess,
    TokenPair,
)

logger = logging.getLogger(__name__)


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects an authorization code."""


class OAuthTokenNotFoundError(Exception):
    """Raised when no persisted token pair is available for a seller."""


class MeliOAuthClient:
    """Build MercadoLibre authorization URLs and exchange codes and refresh tokens."""

    def __init__(
        self,
        meli_settings: MeliSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._meli = meli_settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return self._meli.token_url

    def build_authorization_url(self, state: str) -> str:
        """Construct the MercadoLibre consent URL."""
        params = {
            "response_type": "code",
            "client_id": self._meli.client_id,
            "redirect_uri": str(self._meli.redirect_uri),
            "state": state,
        }
        return f"{self._meli.auth_url}?{urlencode(params)}"

    async def exchange_authorization_code(
        self, code: str
    ) -> Tuple[TokenPair, int, Optional[str]]:
        """
        Exchange an authorization code for tokens.

        Returns a tuple of (token_pair, expires_in_seconds, meli_user_id).
        """
        payload = {
            "grant_type": "authorization_code",
            "client_id": self._meli.client_id,
            "client_secret": self._meli.client_secret,
            "code": code,
            "redirect_uri": str(self._meli.redirect_uri),
        }

        response = await self._post_token(payload)
        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(response.text)

        token_payload = decode_payload(response)
        if not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError(
                "Unexpected token payload returned from MercadoLibre."
            )
        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not refresh_token or not expires_in:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from MercadoLibre."
            )

        user_id = token_payload.get("user_id")
        return (
            TokenPair(access_token=access_token, refresh_token=refresh_token),
            int(expires_in),
            str(user_id) if user_id is not None else None,
        )

    async def refresh_access_token(self, refresh_token: str) -> RefreshResult:
        """
        Exchange ``refresh_token`` for a new access/refresh pair.

        Rejections by the token endpoint come back as :class:`RefreshFailure`;
        only transport failures raise.
        """
        payload = {
            "grant_type": "refresh_token",
            "client_id": self._meli.client_id,
            "client_secret": self._meli.client_secret,
            "refresh_token": refresh_token,
        }

        response = await self._post_token(payload)
        body = decode_payload(response)

        # MercadoLibre may also report a rejected grant inside a 200 body.
        if (
            response.status_code != status.HTTP_200_OK
            or not isinstance(body, dict)
            or "error" in body
        ):
            return RefreshFailure(
                reason=_error_reason(body, response.status_code),
                status_code=response.status_code,
                payload=body,
            )

        access_token = body.get("access_token")
        new_refresh_token = body.get("refresh_token")
        if not access_token or not new_refresh_token:
            return RefreshFailure(
                reason="Incomplete refresh payload returned from MercadoLibre.",
                status_code=response.status_code,
                payload=body,
            )

        expires_in = body.get("expires_in")
        user_id = body.get("user_id")
        return RefreshSuccess(
            tokens=TokenPair(access_token=access_token, refresh_token=new_refresh_token),
            expires_in=int(expires_in) if expires_in else None,
            user_id=str(user_id) if user_id is not None else None,
        )

    async def _post_token(self, payload: Dict[str, Any]) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._meli.http_timeout, transport=self._transport
            ) as client:
                return await client.post(
                    self._meli.token_url,
                    data=payload,
                    headers={"accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("MercadoLibre token endpoint unreachable: %s", exc)
            raise TransportError(str(exc)) from exc


def _error_reason(body: Any, status_code: int) -> str:
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or status_code)
    return str(body or status_code)


__all__ = [
    "MeliOAuthClient",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
]
