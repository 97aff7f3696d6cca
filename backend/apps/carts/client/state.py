"""Optimistic client cart store.

Local state changes before the server answers; each server answer is then
reconciled into it. The server wins for prices and for confirmed lines. Local
state wins for work still in flight: an optimistic line with no server
counterpart survives a refresh, and an ambiguous 401 never empties the cart.

Lines are keyed by product id because a product appears at most once per
cart; a temporary line is matched to the server line by product id since the
server never sees the temporary id.
"""
from __future__ import annotations

import asyncio
import copy
import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from apps.common import get_logger
from ..totals import CartTotals, calculate_totals, line_subtotal
from .gateway import CartGatewayProtocol, ClientSessionProtocol, TokenProviderProtocol
from .results import (
    BusinessError,
    NotFound,
    Ok,
    Queued,
    Result,
    TokenRejected,
    Unauthorized,
    Unavailable,
)

logger = get_logger(__name__).bind(component="carts", layer="client")

TEMP_PREFIX = "temp-"


class ItemStatus(str, Enum):
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"
    ROLLING_BACK = "rolling_back"


def new_temp_id(product_id: int) -> str:
    return f"{TEMP_PREFIX}{product_id}-{uuid.uuid4().hex[:8]}"


# (quantity, unit_price, discount) of a line
Snapshot = Tuple[int, Decimal, Decimal]


def _snapshot(item: "ClientCartItem") -> Snapshot:
    return item.quantity, item.unit_price, item.discount


def _server_snapshot(server: Any) -> Snapshot:
    return int(server.quantity), Decimal(server.unit_price), Decimal(server.discount or 0)


def _restore(item: "ClientCartItem", snapshot: Snapshot) -> None:
    item.quantity, item.unit_price, item.discount = snapshot


@dataclass
class ClientCartItem:
    id: Union[int, str]
    product_id: int
    quantity: int
    unit_price: Decimal
    discount: Decimal = Decimal("0")
    status: ItemStatus = ItemStatus.CONFIRMED
    name: str = ""
    # False once the product is deactivated; the line stays but leaves the totals
    product_active: bool = True

    @property
    def is_temporary(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith(TEMP_PREFIX)

    @property
    def subtotal(self) -> Decimal:
        return line_subtotal(self.quantity, self.unit_price, self.discount)

    @classmethod
    def from_server(cls, server: Any, status: ItemStatus = ItemStatus.CONFIRMED) -> "ClientCartItem":
        product = getattr(server, "product", None)
        return cls(
            id=server.id,
            product_id=server.product_id,
            quantity=int(server.quantity),
            unit_price=Decimal(server.unit_price),
            discount=Decimal(server.discount or 0),
            status=status,
            name=getattr(product, "name", "") if product is not None else "",
            product_active=bool(getattr(server, "product_active", True)),
        )


class ClientCartState:
    def __init__(
        self,
        gateway: CartGatewayProtocol,
        tokens: TokenProviderProtocol,
        session: ClientSessionProtocol,
        *,
        min_destructive_latency: float = 0.12,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.tokens = tokens
        self.session = session
        self.min_destructive_latency = min_destructive_latency
        self._sleep = sleep
        self._items: Dict[int, ClientCartItem] = {}
        # Sum of add deltas still in flight, per product
        self._pending: Dict[int, int] = {}
        # Products removed locally while their add was in flight
        self._tombstones: Set[int] = set()
        # Quantity set while the line's add was in flight, sent once it confirms
        self._deferred: Dict[int, int] = {}
        # Values to revert to if a deferred write fails; in-flight add deltas included
        self._deferred_base: Dict[int, Snapshot] = {}
        # Latest desired quantity queued behind an in-flight write
        self._desired: Dict[int, int] = {}
        self._writing: Set[int] = set()
        self.last_error: Optional[Result] = None
        self.logger = logger.bind(store="ClientCartState")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def items(self) -> List[ClientCartItem]:
        return list(self._items.values())

    def get(self, product_id: int) -> Optional[ClientCartItem]:
        return self._items.get(product_id)

    def summary(self) -> CartTotals:
        return calculate_totals(self._items.values())

    def total_items(self) -> int:
        return self.summary().total_items

    def total_price(self) -> Decimal:
        return self.summary().total

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def add_item(self, product: Any, quantity: int = 1) -> Result:
        if quantity < 1:
            return BusinessError(reason="invalid_quantity", message="Quantity must be at least 1")
        pid = int(product.id)
        self._tombstones.discard(pid)
        item = self._items.get(pid)
        if item is None:
            item = ClientCartItem(
                id=new_temp_id(pid),
                product_id=pid,
                quantity=quantity,
                unit_price=Decimal(getattr(product, "base_price", 0) or 0),
                status=ItemStatus.OPTIMISTIC,
                name=getattr(product, "name", ""),
            )
            self._items[pid] = item
        else:
            item.quantity += quantity
            item.status = ItemStatus.OPTIMISTIC
        self._pending[pid] = self._pending.get(pid, 0) + quantity
        self.logger.debug("Optimistic add", product_id=pid, quantity=quantity, temporary=item.is_temporary)

        result = await self._with_token(lambda token: self.gateway.add_item(pid, quantity, token))
        self._settle_pending(pid, quantity)

        if isinstance(result, Ok):
            await self._confirm_add(pid, result.value)
        elif self._is_ambiguous(result):
            self.logger.warning("Ambiguous 401 on add; keeping optimistic line", product_id=pid)
            self.last_error = result
        else:
            self._rollback_delta(pid, quantity)
            self._record(result, "add", product_id=pid)
            await self._flush_deferred(pid)
        return result

    async def update_quantity(self, item_id: Union[int, str], quantity: int) -> Result:
        if quantity <= 0:
            return await self.remove_item(item_id)
        item = self._find(item_id)
        if item is None:
            return NotFound("Cart item not found")
        pid = item.product_id
        previous = _snapshot(item)
        item.quantity = quantity
        item.status = ItemStatus.OPTIMISTIC
        if item.is_temporary or self._pending.get(pid):
            self._deferred[pid] = quantity
            if not item.is_temporary:
                self._deferred_base.setdefault(pid, previous)
            return Queued()
        if pid in self._writing:
            self._desired[pid] = quantity
            return Queued()
        return await self._write_quantity(pid, quantity, previous)

    async def remove_item(self, item_id: Union[int, str]) -> Result:
        item = self._find(item_id)
        if item is None:
            return NotFound("Cart item not found")
        pid = item.product_id
        del self._items[pid]
        self._drop_deferred(pid)
        self._desired.pop(pid, None)
        if item.is_temporary:
            # Never acknowledged; the server row, if any, is deleted when the add confirms
            if self._pending.get(pid):
                self._tombstones.add(pid)
            return Ok(None)
        if self._pending.get(pid):
            self._tombstones.add(pid)

        result = await self._destructive(lambda token: self.gateway.remove_item(item.id, token))
        if isinstance(result, (Ok, NotFound)):
            return Ok(getattr(result, "value", None))
        self._tombstones.discard(pid)
        item.status = self._restored_status(pid)
        self._items.setdefault(pid, item)
        self._record(result, "remove", item_id=item.id)
        await self._reload()
        return result

    async def clear(self) -> Result:
        snapshot = {pid: copy.copy(item) for pid, item in self._items.items()}
        deferred = dict(self._deferred)
        deferred_base = dict(self._deferred_base)
        tombstoned = set(self._pending) - self._tombstones
        self._items.clear()
        self._deferred.clear()
        self._deferred_base.clear()
        self._desired.clear()
        self._tombstones.update(tombstoned)
        result = await self._destructive(lambda token: self.gateway.clear(token))
        if isinstance(result, Ok):
            return result
        self._tombstones.difference_update(tombstoned)
        for pid, item in snapshot.items():
            item.status = self._restored_status(pid)
            self._items.setdefault(pid, item)
        for pid, quantity in deferred.items():
            if pid in self._items:
                self._deferred.setdefault(pid, quantity)
                if pid in deferred_base:
                    self._deferred_base.setdefault(pid, deferred_base[pid])
        self._record(result, "clear")
        await self._reload()
        return result

    async def refresh(self) -> Result:
        if not self.session.is_authenticated():
            self.logger.info("Client session ended; clearing local cart")
            self._reset()
            return Unauthorized("Not signed in")
        result = await self.gateway.get_cart()
        if isinstance(result, Ok):
            self._reconcile(result.value)
        elif isinstance(result, (Unauthorized, Unavailable)):
            self.logger.warning(
                "Refresh failed transiently; keeping local cart",
                result=type(result).__name__,
                items=len(self._items),
            )
            self.last_error = result
        else:
            self._record(result, "refresh")
        return result

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    async def _confirm_add(self, pid: int, server: Any) -> None:
        if pid in self._tombstones:
            if not self._pending.get(pid):
                self._tombstones.discard(pid)
                self.logger.debug("Deleting line removed while its add was in flight", product_id=pid)
                await self._with_token(lambda token: self.gateway.remove_item(server.id, token))
            return
        pending = self._pending.get(pid, 0)
        current = self._items.get(pid)
        item = ClientCartItem.from_server(
            server, ItemStatus.OPTIMISTIC if pending else ItemStatus.CONFIRMED
        )
        item.quantity += pending
        if not item.name and current is not None:
            item.name = current.name
        self._items[pid] = item
        if pid in self._deferred:
            self._deferred_base[pid] = _snapshot(item)
            item.quantity = self._deferred[pid]
            item.status = ItemStatus.OPTIMISTIC
        await self._flush_deferred(pid)

    async def _flush_deferred(self, pid: int) -> None:
        """Send the absolute quantity set while an add was in flight.

        The line is first put back on its server-backed values so a failed
        write reverts to them.
        """
        if self._pending.get(pid) or pid not in self._deferred:
            return
        quantity = self._deferred.pop(pid)
        base = self._deferred_base.pop(pid, None)
        item = self._items.get(pid)
        if item is None or item.is_temporary:
            return
        if base is not None:
            _restore(item, base)
        if quantity == item.quantity:
            item.status = ItemStatus.CONFIRMED
            return
        await self.update_quantity(item.id, quantity)

    def _reconcile(self, cart: Any) -> None:
        fresh: Dict[int, ClientCartItem] = {}
        for server in getattr(cart, "items", []) or []:
            pid = server.product_id
            if pid in self._tombstones:
                continue
            pending = self._pending.get(pid, 0)
            item = ClientCartItem.from_server(
                server, ItemStatus.OPTIMISTIC if pending else ItemStatus.CONFIRMED
            )
            item.quantity += pending
            local = self._items.get(pid)
            if pid in self._deferred:
                self._deferred_base[pid] = _snapshot(item)
                item.quantity = self._deferred[pid]
                item.status = ItemStatus.OPTIMISTIC
            elif local is not None and pid in self._writing:
                # A quantity write is still in flight; keep the desired value
                item.quantity = local.quantity
                item.status = ItemStatus.OPTIMISTIC
            fresh[pid] = item
        for pid, local in self._items.items():
            if pid in fresh:
                continue
            if local.is_temporary or self._pending.get(pid):
                fresh[pid] = local
        dropped = [pid for pid in self._items if pid not in fresh]
        self._items = fresh
        self.logger.debug("Reconciled with server cart", items=len(fresh), dropped=dropped)

    def _rollback_delta(self, pid: int, quantity: int) -> None:
        item = self._items.get(pid)
        if item is None:
            self._tombstones.discard(pid)
            return
        if item.is_temporary and not self._pending.get(pid):
            del self._items[pid]
            self._drop_deferred(pid)
            return
        base = self._deferred_base.get(pid)
        if pid in self._deferred:
            # The absolute quantity set since supersedes the delta
            if base is not None:
                self._deferred_base[pid] = (base[0] - quantity, base[1], base[2])
            return
        item.quantity -= quantity
        if item.quantity <= 0:
            del self._items[pid]
        elif not self._pending.get(pid) and not item.is_temporary:
            item.status = ItemStatus.CONFIRMED

    async def _write_quantity(self, pid: int, quantity: int, previous: Snapshot) -> Result:
        item = self._items[pid]
        self._writing.add(pid)
        try:
            while True:
                result = await self._with_token(
                    lambda token: self.gateway.update_quantity(item.id, quantity, token)
                )
                if not isinstance(result, Ok):
                    break
                self._apply_server_quantity(pid, result.value)
                previous = _server_snapshot(result.value)
                if pid not in self._desired:
                    break
                quantity = self._desired.pop(pid)
                item = self._items.get(pid, item)
        finally:
            self._writing.discard(pid)
        if not isinstance(result, Ok):
            self._desired.pop(pid, None)
            if isinstance(result, NotFound):
                self._items.pop(pid, None)
            elif pid in self._items:
                _restore(self._items[pid], previous)
                self._items[pid].status = ItemStatus.ROLLING_BACK
            self._record(result, "update", product_id=pid)
            await self._reload()
        return result

    def _apply_server_quantity(self, pid: int, server: Any) -> None:
        item = self._items.get(pid)
        if item is None:
            return
        item.id = server.id
        item.unit_price = Decimal(server.unit_price)
        item.discount = Decimal(server.discount or 0)
        if pid not in self._desired:
            item.quantity = int(server.quantity)
            item.status = ItemStatus.CONFIRMED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _with_token(self, call: Callable[[Optional[str]], Awaitable[Result]]) -> Result:
        token = await self.tokens.current()
        result = await call(token)
        if isinstance(result, TokenRejected):
            self.logger.info("Security token rejected; refreshing and retrying once")
            token = await self.tokens.refresh()
            result = await call(token)
        return result

    async def _destructive(self, call: Callable[[Optional[str]], Awaitable[Result]]) -> Result:
        result, _ = await asyncio.gather(
            self._with_token(call), self._sleep(self.min_destructive_latency)
        )
        return result

    async def _reload(self) -> None:
        result = await self.refresh()
        if not isinstance(result, Ok):
            for item in self._items.values():
                if item.status is ItemStatus.ROLLING_BACK:
                    item.status = ItemStatus.CONFIRMED

    def _find(self, item_id: Union[int, str]) -> Optional[ClientCartItem]:
        for item in self._items.values():
            if item.id == item_id:
                return item
        return None

    def _settle_pending(self, pid: int, quantity: int) -> None:
        remaining = self._pending.get(pid, 0) - quantity
        if remaining > 0:
            self._pending[pid] = remaining
        else:
            self._pending.pop(pid, None)

    def _is_ambiguous(self, result: Result) -> bool:
        return isinstance(result, Unauthorized) and self.session.is_authenticated()

    def _record(self, result: Result, operation: str, **context: Any) -> None:
        self.last_error = result
        self.logger.warning(
            "Cart write failed", operation=operation, result=type(result).__name__, **context
        )

    def _reset(self) -> None:
        self._items.clear()
        self._pending.clear()
        self._tombstones.clear()
        self._deferred.clear()
        self._deferred_base.clear()
        self._desired.clear()

    def _drop_deferred(self, pid: int) -> None:
        self._deferred.pop(pid, None)
        self._deferred_base.pop(pid, None)

    def _restored_status(self, pid: int) -> ItemStatus:
        return ItemStatus.OPTIMISTIC if self._pending.get(pid) else ItemStatus.ROLLING_BACK

