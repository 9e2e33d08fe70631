"""
Domain models for MercadoLibre credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True, slots=True)
class TokenPair:
    """Access/refresh credentials belonging to a single seller."""

    access_token: str
    refresh_token: str

    def as_payload(self) -> Dict[str, str]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
        }


@dataclass(frozen=True, slots=True)
class RefreshSuccess:
    """A refresh exchange that produced a new token pair."""

    tokens: TokenPair
    expires_in: Optional[int] = None
    user_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RefreshFailure:
    """A refresh exchange rejected by the token endpoint."""

    reason: str
    status_code: Optional[int] = None
    payload: Any = None


RefreshResult = Union[RefreshSuccess, RefreshFailure]


@dataclass(slots=True)
class SellerContext:
    """
    Request-scoped view of the seller on whose behalf calls are made.

    ``tokens`` is swapped for a new pair after a successful refresh so the
    remaining calls of the same request use the fresh access token.
    """

    seller_id: str
    tokens: TokenPair


__all__ = [
    "RefreshFailure",
    "RefreshResult",
    "RefreshSuccess",
    "SellerContext",
    "TokenPair",
]
