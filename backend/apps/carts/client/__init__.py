"""Client-side optimistic cart store and its transport seam."""
from .gateway import ServiceCartGateway, ServiceTokenProvider
from .results import (
    BusinessError,
    Forbidden,
    NotFound,
    Ok,
    Queued,
    TokenRejected,
    Unauthorized,
    Unavailable,
)
from .state import ClientCartItem, ClientCartState, ItemStatus

__all__ = [
    "BusinessError",
    "ClientCartItem",
    "ClientCartState",
    "Forbidden",
    "ItemStatus",
    "NotFound",
    "Ok",
    "Queued",
    "ServiceCartGateway",
    "ServiceTokenProvider",
    "TokenRejected",
    "Unauthorized",
    "Unavailable",
]
