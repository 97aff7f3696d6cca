from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

from django.db import transaction

from apps.caching import keys
from apps.caching.service import CacheService
from apps.common import get_logger
from apps.common.errors import NotFoundError
from .commands import ProductListQuery, ProductUpdateCommand
from .dtos import CategoryDTO, ProductDTO
from .mappers import CategoryMapper, ProductMapper
from .protocols import CategoryRepositoryProtocol, ProductRepositoryProtocol

logger = get_logger(__name__).bind(component="catalog", layer="service")

# Fields embedded in cached carts; changing them makes cart entries stale
CART_VISIBLE_FIELDS = frozenset({"active", "stock", "name"})


class ProductCatalog:
    """Product lookups for the cart core plus the catalog invalidation hooks."""

    def __init__(self, products: ProductRepositoryProtocol, cache: CacheService):
        self.products = products
        self.cache = cache
        self.logger = logger.bind(service="ProductCatalog")

    def get_by_id(self, product_id: int) -> Optional[ProductDTO]:
        """Active product by id, read through ``product:<id>``."""
        cached = self.cache.get_product(product_id)
        if cached is not None:
            return cached
        product = self.products.get(id=product_id, active=True)
        if not product:
            self.logger.info("Product not found or inactive", product_id=product_id)
            return None
        dto = ProductMapper.to_dto(product)
        self.cache.set_product(product_id, dto)
        return dto

    def get_many(self, ids: Iterable[int]) -> Dict[int, ProductDTO]:
        """Live read, inactive products included; callers decide what to reject."""
        wanted = sorted({int(i) for i in ids})
        if not wanted:
            return {}
        found = {p.id: ProductMapper.to_dto(p) for p in self.products.get_many(wanted)}
        self.logger.debug("Fetched products", requested=len(wanted), found=len(found))
        return found

    def list_products(
        self, query: Optional[Union[ProductListQuery, Dict[str, Any]]] = None
    ) -> List[ProductDTO]:
        cmd = (
            query
            if isinstance(query, ProductListQuery)
            else ProductListQuery.from_raw(query or {})
        )
        filters = cmd.as_filters()
        cached = self.cache.get_products(filters)
        if cached is not None:
            return cached
        self.logger.debug("Product list cache miss", **filters)
        data = ProductMapper.many_to_dto(self.products.list_filtered(**filters))
        self.cache.set_products(filters, data)
        return data

    def update_product(
        self, product_id: int, data: Union[Dict[str, Any], ProductUpdateCommand]
    ) -> ProductDTO:
        cmd = (
            data
            if isinstance(data, ProductUpdateCommand)
            else ProductUpdateCommand.from_raw(product_id, data)
        )
        self.logger.info(
            "Updating product", product_id=product_id, fields=sorted(cmd.changes)
        )
        with transaction.atomic():
            product = self.products.get_for_update(id=product_id)
            if not product:
                self.logger.warning("Product update failed: not found", product_id=product_id)
                raise NotFoundError("Product")
            if cmd.changes:
                self.products.update(product, **cmd.changes)
        self.invalidate_product(product_id)
        if CART_VISIBLE_FIELDS.intersection(cmd.changes):
            self.cache.invalidate_domain(keys.CARTS)
        self.logger.info("Product updated", product_id=product_id)
        return ProductMapper.to_dto(product)

    def invalidate_product(self, product_id: Optional[int] = None) -> bool:
        """Hook for catalog and order flows that change products outside this service."""
        if product_id is None:
            return self.cache.invalidate_domain(keys.PRODUCTS)
        return self.cache.delete_product(product_id)

    def invalidate_category(self, category_id: Optional[int] = None) -> bool:
        if category_id is None:
            return self.cache.invalidate_domain(keys.CATEGORIES)
        deleted = self.cache.delete_category(category_id)
        # Product entries embed their category
        self.cache.invalidate_domain(keys.PRODUCTS)
        return deleted


class CategoryService:
    def __init__(self, categories: CategoryRepositoryProtocol, cache: CacheService):
        self.categories = categories
        self.cache = cache
        self.logger = logger.bind(service="CategoryService")

    def list_categories(self) -> List[CategoryDTO]:
        cached = self.cache.get_categories()
        if cached is not None:
            return cached
        self.logger.debug("Category list cache miss")
        data = CategoryMapper.many_to_dto(self.categories.list(active=True))
        self.cache.set_categories(data)
        return data

    def get_category(self, category_id: int) -> CategoryDTO:
        cached = self.cache.get_category(category_id)
        if cached is not None:
            return cached
        category = self.categories.get(id=category_id, active=True)
        if not category:
            self.logger.info("Category not found", category_id=category_id)
            raise NotFoundError("Category")
        dto = CategoryMapper.to_dto(category)
        self.cache.set_category(category_id, dto)
        return dto
