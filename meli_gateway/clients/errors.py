"""
Error taxonomy for calls made to the MercadoLibre API.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


class MeliClientError(Exception):
    """Base class for MercadoLibre client failures."""


class UpstreamError(MeliClientError):
    """
    A non-2xx response that is not eligible for a refresh-and-retry, or the
    failure of the single retried dispatch.
    """

    def __init__(
        self,
        status_code: int,
        payload: Any,
        response: Optional[httpx.Response] = None,
    ) -> None:
        self.status_code = status_code
        self.payload = payload
        self.response = response
        super().__init__(f"MercadoLibre responded with {status_code}: {_describe(payload)}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "UpstreamError":
        return cls(response.status_code, decode_payload(response), response)


class IntegrationRelinkRequired(MeliClientError):
    """The refresh exchange failed; the seller must link the account again."""

    LINK_MELI = "link_meli"

    def __init__(
        self,
        message: str = "Please link MercadoLibre again",
        *,
        action: str = LINK_MELI,
        reason: Optional[str] = None,
    ) -> None:
        self.message = message
        self.action = action
        self.reason = reason
        super().__init__(message)


class TransportError(MeliClientError):
    """Network-level failure unrelated to an HTTP status."""


def decode_payload(response: httpx.Response) -> Any:
    """Return the JSON body of ``response``, falling back to its text."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _describe(payload: Any) -> str:
    # MercadoLibre puts the error code in "error" and the detail in "message".
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or payload)
    return str(payload)


__all__ = [
    "IntegrationRelinkRequired",
    "MeliClientError",
    "TransportError",
    "UpstreamError",
    "decode_payload",
]
