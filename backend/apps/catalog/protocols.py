from __future__ import annotations

from typing import Iterable, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Category, Product


class ProductRepositoryProtocol(Protocol):
    def get(self, **filters) -> Optional["Product"]: ...

    def get_many(self, ids: Iterable[int]) -> Iterable["Product"]: ...

    def get_for_update(self, **filters) -> Optional["Product"]: ...

    def get_many_for_update(self, ids: Iterable[int]) -> Iterable["Product"]: ...

    def list_filtered(self, **filters) -> Iterable["Product"]: ...

    def update(self, obj: "Product", **data) -> "Product": ...


class CategoryRepositoryProtocol(Protocol):
    def get(self, **filters) -> Optional["Category"]: ...

    def list(self, **filters) -> Iterable["Category"]: ...
