from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional, TypeVar

from apps.common import get_logger
from . import keys
from .protocols import CacheBackendProtocol

logger = get_logger(__name__).bind(component="caching", layer="service")

R = TypeVar("R")


class CacheService:
    """Typed, fail-open access to the derived cache.

    Each key group (see ``keys``) stores its entries under the group's current
    generation number, passed to the backend as the key version. Bumping the
    generations of a domain orphans all of its entries at once.

    The database stays authoritative: any backend error is logged and treated
    as a miss so callers fall through to the store.
    """

    def __init__(
        self,
        backend: CacheBackendProtocol,
        *,
        cart_ttl: int = 300,
        product_ttl: int = 3600,
        products_ttl: int = 1800,
        categories_ttl: int = 3600,
    ):
        self.backend = backend
        self.cart_ttl = cart_ttl
        self.product_ttl = product_ttl
        self.products_ttl = products_ttl
        self.categories_ttl = categories_ttl
        self.logger = logger.bind(service="CacheService")

    # ------------------------------------------------------------------
    # Generic accessors
    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[Any]:
        def _read():
            value = self.backend.get(key, version=self._version_for(key))
            self.logger.debug(
                "Cache hit" if value is not None else "Cache miss", cache_key=key
            )
            return value

        return self._guard("get", key, _read, None)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        def _write():
            options = {} if ttl_seconds is None else {"timeout": ttl_seconds}
            self.backend.set(key, value, version=self._version_for(key), **options)
            return True

        return self._guard("set", key, _write, False)

    def delete(self, key: str) -> bool:
        def _remove():
            self.backend.delete(key, version=self._version_for(key))
            self.logger.debug("Cache key deleted", cache_key=key)
            return True

        return self._guard("delete", key, _remove, False)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def get_product(self, product_id: int) -> Optional[Any]:
        return self.get(keys.product(product_id))

    def set_product(self, product_id: int, value: Any) -> bool:
        return self.set(keys.product(product_id), value, self.product_ttl)

    def delete_product(self, product_id: int) -> bool:
        """Drop one product and every cached product list that may embed it."""
        deleted = self.delete(keys.product(product_id))
        self._bump("products")
        return deleted

    def get_products(self, filters: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        return self.get(keys.products(filters))

    def set_products(self, filters: Optional[Dict[str, Any]], value: Any) -> bool:
        return self.set(keys.products(filters), value, self.products_ttl)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def get_category(self, category_id: int) -> Optional[Any]:
        return self.get(keys.category(category_id))

    def set_category(self, category_id: int, value: Any) -> bool:
        return self.set(keys.category(category_id), value, self.categories_ttl)

    def delete_category(self, category_id: int) -> bool:
        deleted = self.delete(keys.category(category_id))
        self.delete(keys.categories())
        return deleted

    def get_categories(self) -> Optional[Any]:
        return self.get(keys.categories())

    def set_categories(self, value: Any) -> bool:
        return self.set(keys.categories(), value, self.categories_ttl)

    # ------------------------------------------------------------------
    # Carts
    # ------------------------------------------------------------------
    def get_user_cart(self, user_id: int) -> Optional[Any]:
        return self.get(keys.user_cart(user_id))

    def fill_user_cart(self, user_id: int, value: Any) -> bool:
        """Populate the cart entry from a database read.

        Only the read-through path of ``CartService`` calls this; mutations
        delete the entry instead.
        """
        return self.set(keys.user_cart(user_id), value, self.cart_ttl)

    def delete_user_cart(self, user_id: int) -> bool:
        deleted = self.delete(keys.user_cart(user_id))
        if deleted:
            self.logger.info("Cart cache invalidated", user_id=user_id)
        return deleted

    # ------------------------------------------------------------------
    # Bulk invalidation
    # ------------------------------------------------------------------
    def invalidate_domain(self, domain: str) -> bool:
        """Orphan every entry of ``domain`` by bumping its group generations."""
        if domain not in keys.DOMAIN_GROUPS:
            raise ValueError(f"Unknown cache domain: {domain}")
        results = [self._bump(group) for group in keys.DOMAIN_GROUPS[domain]]
        ok = all(results)
        if ok:
            self.logger.info("Cache domain invalidated", domain=domain)
        return ok

    def invalidate_all(self, domains: Optional[Iterable[str]] = None) -> Dict[str, bool]:
        return {d: self.invalidate_domain(d) for d in (domains or keys.DOMAINS)}

    def generations(self) -> Dict[str, Optional[int]]:
        return {
            group: self._guard(
                "generation",
                keys.generation(group),
                lambda group=group: self._generation(group),
                None,
            )
            for groups in keys.DOMAIN_GROUPS.values()
            for group in groups
        }

    def ping(self) -> bool:
        probe = "health:probe"

        def _probe():
            self.backend.set(probe, 1, timeout=5)
            return self.backend.get(probe) == 1

        return self._guard("ping", probe, _probe, False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _generation(self, group: str) -> int:
        value = self.backend.get(keys.generation(group))
        return int(value) if value else 1

    def _bump(self, group: str) -> bool:
        def _write():
            key = keys.generation(group)
            # Counters never expire; add() only seeds a missing one
            self.backend.add(key, 1, timeout=None)
            generation = self.backend.incr(key)
            self.logger.debug("Bumped cache generation", group=group, new_generation=generation)
            return True

        return self._guard("invalidate", keys.generation(group), _write, False)

    def _version_for(self, key: str) -> Optional[int]:
        group = keys.group_of(key)
        if group is None:
            return None
        return self._generation(group)

    def _guard(self, operation: str, key: str, fn: Callable[[], R], fallback: R) -> R:
        try:
            return fn()
        except Exception as exc:
            self.logger.warning(
                "Cache backend error; falling back to store",
                operation=operation,
                cache_key=key,
                error=str(exc),
                exception=exc.__class__.__name__,
            )
            return fallback
