"""
FastAPI application entrypoint for the MercadoLibre gateway.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from meli_gateway.api.routes import router as api_router
from meli_gateway.clients import TOKENS_UPDATED, IntegrationRelinkRequired, TransportError
from meli_gateway.core.config import get_settings
from meli_gateway.core.logging import configure_logging
from meli_gateway.dependencies import close_meli_http_client, get_notification_bus
from meli_gateway.schemas import RelinkRequiredResponse

logger = logging.getLogger(__name__)


def _log_token_rotation(payload: Dict[str, Any]) -> None:
    logger.info(
        "MercadoLibre tokens rotated", extra={"seller_id": payload.get("seller_id")}
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_meli_http_client()


async def _relink_required_handler(
    request: Request, exc: IntegrationRelinkRequired
) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.UNAUTHORIZED,
        content=RelinkRequiredResponse(message=exc.message, action=exc.action).model_dump(),
    )


async def _transport_error_handler(request: Request, exc: TransportError) -> JSONResponse:
    logger.error("MercadoLibre unreachable for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=HTTPStatus.BAD_GATEWAY,
        content={"detail": "MercadoLibre is unreachable."},
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="MercadoLibre Gateway",
        version="0.1.0",
        description="Authenticated proxy for the MercadoLibre API and seller orders.",
        lifespan=_lifespan,
    )
    app.include_router(api_router, prefix="/api")
    app.add_exception_handler(IntegrationRelinkRequired, _relink_required_handler)
    app.add_exception_handler(TransportError, _transport_error_handler)

    bus = get_notification_bus()
    if _log_token_rotation not in bus.subscribers(TOKENS_UPDATED):
        bus.subscribe(TOKENS_UPDATED, _log_token_rotation)
    return app


app = create_app()

__all__ = ["app", "create_app"]
