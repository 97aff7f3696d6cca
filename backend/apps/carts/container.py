from __future__ import annotations

from apps.activity.container import build_audit_log
from apps.caching.container import build_cache_service
from apps.catalog.container import build_product_catalog
from apps.catalog.mappers import ProductMapper
from apps.catalog.repositories import ProductRepository
from apps.users.repositories import UserRepository

from .mappers import CartItemMapper, CartMapper
from .repositories import CartItemRepository, CartRepository
from .services import CartService


def build_cart_service() -> CartService:
    item_mapper = CartItemMapper(ProductMapper())
    return CartService(
        carts=CartRepository(),
        items=CartItemRepository(),
        catalog=build_product_catalog(),
        products=ProductRepository(),
        users=UserRepository(),
        cache=build_cache_service(),
        audit=build_audit_log(),
        cart_mapper=CartMapper(item_mapper),
        item_mapper=item_mapper,
    )
