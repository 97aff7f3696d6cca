from __future__ import annotations

from django.conf import settings
from django.core.cache import cache

from .service import CacheService


def build_cache_service() -> CacheService:
    return CacheService(
        cache,
        cart_ttl=settings.CACHE_TTL_CART,
        product_ttl=settings.CACHE_TTL_PRODUCT,
        products_ttl=settings.CACHE_TTL_PRODUCTS,
        categories_ttl=settings.CACHE_TTL_CATEGORIES,
    )
