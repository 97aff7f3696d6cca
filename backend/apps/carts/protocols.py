from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Protocol, TYPE_CHECKING

from apps.catalog.dtos import ProductDTO

if TYPE_CHECKING:
    from apps.catalog.models import Product
    from .dtos import CartDTO
    from .models import Cart, CartItem


class CartRepositoryProtocol(Protocol):
    def get(self, **filters) -> Optional["Cart"]: ...

    def get_for_update(self, **filters) -> Optional["Cart"]: ...

    def get_with_items(self, user_id: int) -> Optional["Cart"]: ...

    def create(self, **data) -> "Cart": ...

    def touch(self, cart: "Cart") -> "Cart": ...


class CartItemRepositoryProtocol(Protocol):
    def get_with_product(self, **filters) -> Optional["CartItem"]: ...

    def get_for_update(self, **filters) -> Optional["CartItem"]: ...

    def create(self, **data) -> "CartItem": ...

    def set_quantity(self, item: "CartItem", quantity: int, unit_price: Decimal) -> "CartItem": ...

    def delete(self, item: "CartItem") -> None: ...

    def delete_for_cart(self, cart_id: int) -> int: ...


class ProductLockProtocol(Protocol):
    """Row-locked product reads used for stock checks inside a transaction."""

    def get_for_update(self, **filters) -> Optional["Product"]: ...

    def get_many_for_update(self, ids: Iterable[int]) -> Iterable["Product"]: ...


class ProductCatalogProtocol(Protocol):
    def get_by_id(self, product_id: int) -> Optional[ProductDTO]: ...

    def get_many(self, ids: Iterable[int]) -> Dict[int, ProductDTO]: ...


class AuditLogProtocol(Protocol):
    def record(self, action: str, *, user_id: Optional[int] = None, description: str = "", **metadata: Any) -> bool: ...


class CartMapperProtocol(Protocol):
    def to_dto(self, cart: "Cart") -> "CartDTO": ...

    def to_cache(self, dto: "CartDTO") -> Dict[str, Any]: ...

    def from_cache(self, payload: Dict[str, Any]) -> "CartDTO": ...
