from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple, Union

from django.db import IntegrityError, transaction

from apps.caching.service import CacheService
from apps.common import get_logger
from apps.common.errors import (
    INSUFFICIENT_STOCK,
    PRODUCT_INACTIVE,
    AuthorizationError,
    BusinessLogicError,
    NotFoundError,
)
from apps.users.protocols import UserRepositoryProtocol
from apps.users.session import Session
from .commands import CartItemCommand, CartReplaceCommand
from .dtos import AddItemResult, CartDTO, CartItemDTO, UpdateItemResult
from .mappers import CartItemMapper
from .pricing import price_for
from .protocols import (
    AuditLogProtocol,
    CartItemRepositoryProtocol,
    CartMapperProtocol,
    CartRepositoryProtocol,
    ProductCatalogProtocol,
    ProductLockProtocol,
)
from .totals import CartTotals, calculate_totals

logger = get_logger(__name__).bind(component="carts", layer="service")


class CartService:
    """Server-of-record cart operations.

    Every mutation runs its read-stock-then-write sequence inside one
    ``transaction.atomic()`` block holding row locks on the cart, the line and
    the product. The ``cart:<userId>`` cache entry is deleted once the
    transaction commits; only ``get_or_create_cart`` ever fills it.
    """

    def __init__(
        self,
        carts: CartRepositoryProtocol,
        items: CartItemRepositoryProtocol,
        catalog: ProductCatalogProtocol,
        products: ProductLockProtocol,
        users: UserRepositoryProtocol,
        cache: CacheService,
        audit: AuditLogProtocol,
        cart_mapper: CartMapperProtocol,
        item_mapper: Optional[CartItemMapper] = None,
    ):
        self.carts = carts
        self.items = items
        self.catalog = catalog
        self.products = products
        self.users = users
        self.cache = cache
        self.audit = audit
        self.cart_mapper = cart_mapper
        self.item_mapper = item_mapper or CartItemMapper()
        self.logger = logger.bind(service="CartService")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_or_create_cart(self, user_id: int) -> CartDTO:
        self._ensure_session(user_id)
        cached = self.cache.get_user_cart(user_id)
        if cached is not None:
            try:
                return self.cart_mapper.from_cache(cached)
            except (TypeError, KeyError, ValueError) as exc:
                self.logger.warning(
                    "Discarding unreadable cart cache entry", user_id=user_id, error=str(exc)
                )
                self.cache.delete_user_cart(user_id)
        cart = self.carts.get_with_items(user_id)
        if cart is None:
            cart = self._create_cart(user_id)
        dto = self.cart_mapper.to_dto(cart)
        self.cache.fill_user_cart(user_id, self.cart_mapper.to_cache(dto))
        self.logger.debug(
            "Cart loaded from store", user_id=user_id, cart_id=dto.id, items=len(dto.items)
        )
        return dto

    def get_cart_totals(self, session: Session) -> Tuple[CartDTO, CartTotals]:
        cart = self.get_or_create_cart(session.user_id)
        return cart, calculate_totals(cart.items)

    def get_item(self, item_id: int, session: Session) -> CartItemDTO:
        self._ensure_session(session.user_id)
        item = self._owned(self.items.get_with_product(id=item_id), session.user_id)
        return self.item_mapper.to_dto(item)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_item(self, product_id: int, quantity: int, session: Session) -> AddItemResult:
        user_id = session.user_id
        if quantity is None or int(quantity) < 1:
            raise BusinessLogicError("Quantity must be at least 1", reason="invalid_quantity")
        quantity = int(quantity)
        self._ensure_session(user_id)
        product = self.catalog.get_by_id(product_id)
        if product is None:
            self.logger.info("Add rejected: product unavailable", product_id=product_id, user_id=user_id)
            raise NotFoundError("Product")
        self.logger.debug(
            "Adding item",
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            quoted_price=str(price_for(product, session.tier)),
        )
        for attempt in range(2):
            try:
                with transaction.atomic():
                    item, previous = self._upsert_item(user_id, product_id, quantity, session.tier)
                break
            except IntegrityError:
                if attempt:
                    raise
                self.logger.warning(
                    "Concurrent insert of cart line; retrying as update",
                    user_id=user_id,
                    product_id=product_id,
                )
        self._invalidate(user_id)
        self.audit.record(
            "cart_item_added",
            user_id=user_id,
            description=f"Added {quantity} of product {product_id}",
            product_id=product_id,
            quantity_delta=quantity,
            quantity=item.quantity,
            unit_price=item.unit_price,
        )
        self.logger.info(
            "Item added",
            user_id=user_id,
            product_id=product_id,
            quantity=item.quantity,
            updated=previous is not None,
        )
        return AddItemResult(item=self.item_mapper.to_dto(item), updated=previous is not None)

    def update_item_quantity(
        self, item_id: int, quantity: int, session: Session
    ) -> UpdateItemResult:
        if quantity is None or int(quantity) <= 0:
            return UpdateItemResult(item=self.remove_item(item_id, session), removed=True)
        user_id = session.user_id
        quantity = int(quantity)
        self._ensure_session(user_id)
        with transaction.atomic():
            item = self._owned(self.items.get_for_update(id=item_id), user_id)
            product = self.products.get_for_update(id=item.product_id)
            if product is None or not product.active:
                self.logger.info(
                    "Update rejected: product inactive", item_id=item_id, product_id=item.product_id
                )
                raise BusinessLogicError(
                    "This product is no longer available", reason=PRODUCT_INACTIVE
                )
            self._check_stock(product, quantity)
            previous = item.quantity
            item = self.items.set_quantity(item, quantity, price_for(product, session.tier))
            item.product = product
            self.carts.touch(item.cart)
        self._invalidate(user_id)
        self.audit.record(
            "cart_item_updated",
            user_id=user_id,
            description=f"Set product {item.product_id} quantity to {quantity}",
            item_id=item_id,
            product_id=item.product_id,
            previous_quantity=previous,
            quantity=quantity,
            unit_price=item.unit_price,
        )
        self.logger.info("Item quantity updated", user_id=user_id, item_id=item_id, quantity=quantity)
        return UpdateItemResult(item=self.item_mapper.to_dto(item))

    def remove_item(self, item_id: int, session: Session) -> CartItemDTO:
        user_id = session.user_id
        self._ensure_session(user_id)
        with transaction.atomic():
            item = self._owned(self.items.get_for_update(id=item_id), user_id)
            dto = self.item_mapper.to_dto(item)
            self.items.delete(item)
            self.carts.touch(item.cart)
        self._invalidate(user_id)
        self.audit.record(
            "cart_item_removed",
            user_id=user_id,
            description=f"Removed product {dto.product_id}",
            item_id=item_id,
            product_id=dto.product_id,
            quantity=dto.quantity,
        )
        self.logger.info("Item removed", user_id=user_id, item_id=item_id)
        return dto

    def update_cart(
        self,
        items: Union[CartReplaceCommand, Iterable[Union[CartItemCommand, dict]]],
        session: Session,
    ) -> CartDTO:
        """Replace every line. Discounts are reset; nothing changes if any line fails."""
        user_id = session.user_id
        cmd = (
            items
            if isinstance(items, CartReplaceCommand)
            else CartReplaceCommand.from_raw({"items": list(items)})
        )
        wanted = cmd.merged()
        self._ensure_session(user_id)
        self.logger.info("Replacing cart", user_id=user_id, products=len(wanted))

        snapshots = self.catalog.get_many(wanted.keys())
        for product_id, quantity in wanted.items():
            self._check_replacement(snapshots.get(product_id), product_id, quantity)

        with transaction.atomic():
            cart = self._locked_cart(user_id)
            locked = {p.id: p for p in self.products.get_many_for_update(wanted.keys())}
            for product_id, quantity in wanted.items():
                self._check_replacement(locked.get(product_id), product_id, quantity)
            dropped = self.items.delete_for_cart(cart.id)
            for product_id, quantity in wanted.items():
                product = locked[product_id]
                self.items.create(
                    cart=cart,
                    product=product,
                    quantity=quantity,
                    unit_price=price_for(product, session.tier),
                )
            self.carts.touch(cart)
        self._invalidate(user_id)
        self.audit.record(
            "cart_replaced",
            user_id=user_id,
            description=f"Replaced cart with {len(wanted)} products",
            removed_lines=dropped,
            items=[{"product_id": pid, "quantity": qty} for pid, qty in wanted.items()],
        )
        return self.get_or_create_cart(user_id)

    def clear_cart(self, user_id: int) -> Optional[CartDTO]:
        """Remove every line. No cart yet is a no-op returning ``None``."""
        self._ensure_session(user_id)
        if self.carts.get(user_id=user_id) is None:
            self.logger.debug("Clear skipped: no cart", user_id=user_id)
            return None
        with transaction.atomic():
            cart = self.carts.get_for_update(user_id=user_id)
            if cart is None:
                return None
            removed = self.items.delete_for_cart(cart.id)
            self.carts.touch(cart)
        self._invalidate(user_id)
        self.audit.record(
            "cart_cleared",
            user_id=user_id,
            description="Cleared cart",
            removed_lines=removed,
        )
        self.logger.info("Cart cleared", user_id=user_id, removed_lines=removed)
        return self.get_or_create_cart(user_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _ensure_session(self, user_id: Optional[int]) -> None:
        if not user_id or not self.users.is_session_active(user_id):
            self.logger.warning("Rejected request for inactive session", user_id=user_id)
            raise AuthorizationError()

    def _owned(self, item: Any, user_id: int) -> Any:
        if item is None:
            raise NotFoundError("Cart item")
        if item.cart.user_id != user_id:
            self.logger.warning(
                "Cart item ownership mismatch", item_id=item.id, actor_id=user_id
            )
            raise AuthorizationError(forbidden=True)
        return item

    def _create_cart(self, user_id: int) -> Any:
        try:
            with transaction.atomic():
                cart = self.carts.create(user_id=user_id)
        except IntegrityError:
            # Another request created it first
            cart = self.carts.get_with_items(user_id)
            if cart is None:
                raise
            self.logger.debug("Cart created by concurrent request", user_id=user_id, cart_id=cart.id)
            return cart
        self.logger.info("Cart created", user_id=user_id, cart_id=cart.id)
        return cart

    def _locked_cart(self, user_id: int) -> Any:
        cart = self.carts.get_for_update(user_id=user_id)
        if cart is None:
            self._create_cart(user_id)
            cart = self.carts.get_for_update(user_id=user_id)
        return cart

    def _upsert_item(self, user_id: int, product_id: int, quantity: int, tier: str):
        cart = self._locked_cart(user_id)
        product = self.products.get_for_update(id=product_id)
        if product is None or not product.active:
            raise NotFoundError("Product")
        existing = self.items.get_for_update(cart_id=cart.id, product_id=product_id)
        previous = existing.quantity if existing is not None else None
        new_quantity = quantity + (previous or 0)
        self._check_stock(product, new_quantity)
        unit_price = price_for(product, tier)
        if existing is not None:
            item = self.items.set_quantity(existing, new_quantity, unit_price)
        else:
            item = self.items.create(
                cart=cart, product=product, quantity=new_quantity, unit_price=unit_price
            )
        item.product = product
        self.carts.touch(cart)
        return item, previous

    def _check_replacement(self, product: Any, product_id: int, quantity: int) -> None:
        if product is None or not product.active:
            self.logger.info("Replace rejected: product unavailable", product_id=product_id)
            raise NotFoundError("Product", details={"entity": "Product", "productId": product_id})
        self._check_stock(product, quantity)

    def _check_stock(self, product: Any, quantity: int) -> None:
        if product.stock < quantity:
            self.logger.info(
                "Insufficient stock",
                product_id=product.id,
                requested=quantity,
                available=product.stock,
            )
            raise BusinessLogicError(
                f"Only {product.stock} units of {product.name} are available",
                reason=INSUFFICIENT_STOCK,
                details={
                    "productId": product.id,
                    "available": product.stock,
                    "requested": quantity,
                },
            )

    def _invalidate(self, user_id: int) -> None:
        transaction.on_commit(lambda: self.cache.delete_user_cart(user_id))


__all__ = ["CartService"]
