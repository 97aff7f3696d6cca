from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from asgiref.sync import sync_to_async
from django.db import DatabaseError

from apps.api.csrf import MutationTokenService
from apps.common import get_logger
from apps.common.errors import DomainError
from apps.users.session import Session
from .results import Ok, Result, Unavailable, from_error

logger = get_logger(__name__).bind(component="carts", layer="client-gateway")


class CartGatewayProtocol(Protocol):
    """Async transport to the cart RPC surface."""

    async def get_cart(self) -> Result: ...

    async def add_item(self, product_id: int, quantity: int, token: Optional[str]) -> Result: ...

    async def update_quantity(self, item_id: int, quantity: int, token: Optional[str]) -> Result: ...

    async def remove_item(self, item_id: int, token: Optional[str]) -> Result: ...

    async def clear(self, token: Optional[str]) -> Result: ...


class TokenProviderProtocol(Protocol):
    async def current(self) -> Optional[str]: ...

    async def refresh(self) -> Optional[str]: ...


class ClientSessionProtocol(Protocol):
    def is_authenticated(self) -> bool: ...


class ServiceCartGateway:
    """Runs an in-process ``CartService`` behind the async gateway interface.

    Mutations verify the anti-forgery token first, exactly like the HTTP
    views, so the store's refresh-and-retry path is exercised end to end.
    """

    def __init__(
        self,
        service: Any,
        session: Session,
        token_service: Optional[MutationTokenService] = None,
    ):
        self.service = service
        self.session = session
        self.token_service = token_service or MutationTokenService()
        self.logger = logger.bind(user_id=session.user_id)

    async def get_cart(self) -> Result:
        return await self._call(lambda: self.service.get_or_create_cart(self.session.user_id))

    async def add_item(self, product_id: int, quantity: int, token: Optional[str]) -> Result:
        return await self._mutate(
            token, lambda: self.service.add_item(product_id, quantity, self.session).item
        )

    async def update_quantity(self, item_id: int, quantity: int, token: Optional[str]) -> Result:
        return await self._mutate(
            token,
            lambda: self.service.update_item_quantity(item_id, quantity, self.session).item,
        )

    async def remove_item(self, item_id: int, token: Optional[str]) -> Result:
        return await self._mutate(token, lambda: self.service.remove_item(item_id, self.session))

    async def clear(self, token: Optional[str]) -> Result:
        return await self._mutate(token, lambda: self.service.clear_cart(self.session.user_id))

    async def _mutate(self, token: Optional[str], fn: Callable[[], Any]) -> Result:
        def verified():
            self.token_service.verify(token, self.session.user_id)
            return fn()

        return await self._call(verified)

    async def _call(self, fn: Callable[[], Any]) -> Result:
        try:
            value = await sync_to_async(fn, thread_sensitive=True)()
        except DomainError as exc:
            return from_error(exc.code, exc.message, exc.details)
        except DatabaseError as exc:
            self.logger.warning("Cart store unavailable", error=str(exc))
            return Unavailable(str(exc))
        return Ok(value)


class ServiceTokenProvider:
    """Issues tokens in-process for ``ServiceCartGateway`` callers."""

    def __init__(self, token_service: MutationTokenService, user_id: int):
        self.token_service = token_service
        self.user_id = user_id
        self._token: Optional[str] = None

    async def current(self) -> Optional[str]:
        if self._token is None:
            self._token = self.token_service.issue(self.user_id)
        return self._token

    async def refresh(self) -> Optional[str]:
        self._token = self.token_service.issue(self.user_id)
        return self._token
