"""Schemas related to the MercadoLibre link flow."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by MercadoLibre.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class RelinkRequiredResponse(BaseModel):
    """Body returned when the seller has to link MercadoLibre again."""

    message: str
    action: str


__all__ = ["OAuthCallbackPayload", "RelinkRequiredResponse"]
