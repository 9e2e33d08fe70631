"""Service layer exports."""

from .meli_tokens import MeliTokenService
from .notifications import NotificationBus
from .orders import OrderNotFoundError, OrderService
from .token_cipher import TokenCipherService

__all__ = [
    "MeliTokenService",
    "NotificationBus",
    "OrderNotFoundError",
    "OrderService",
    "TokenCipherService",
]
