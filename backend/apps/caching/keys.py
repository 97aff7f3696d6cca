"""Logical cache keys, their groups and the domains that own them.

A key's group is its prefix (``product``, ``products``, ``category``,
``categories``, ``cart``). Each group has its own generation counter so a
domain can be dropped wholesale, or only its list entries.
"""
import hashlib
import json
from typing import Any, Dict, Optional, Tuple

PRODUCTS = "products"
CATEGORIES = "categories"
CARTS = "carts"
DOMAINS = (PRODUCTS, CATEGORIES, CARTS)

DOMAIN_GROUPS: Dict[str, Tuple[str, ...]] = {
    PRODUCTS: ("product", "products"),
    CATEGORIES: ("category", "categories"),
    CARTS: ("cart",),
}


def product(product_id: Any) -> str:
    return f"product:{product_id}"


def products(filters: Optional[Dict[str, Any]] = None) -> str:
    return f"products:{filter_hash(filters)}"


def category(category_id: Any) -> str:
    return f"category:{category_id}"


def categories() -> str:
    return "categories"


def user_cart(user_id: Any) -> str:
    return f"cart:{user_id}"


def generation(group: str) -> str:
    return f"generation:{group}"


def filter_hash(filters: Optional[Dict[str, Any]]) -> str:
    """Stable digest of the filter parameters; ``None`` values are ignored."""
    normalized = {k: v for k, v in (filters or {}).items() if v is not None}
    if not normalized:
        return "all"
    raw = json.dumps(normalized, sort_keys=True, default=str)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def group_of(key: str) -> Optional[str]:
    prefix = key.split(":", 1)[0]
    for groups in DOMAIN_GROUPS.values():
        if prefix in groups:
            return prefix
    return None
