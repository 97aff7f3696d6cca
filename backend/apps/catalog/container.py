from __future__ import annotations

from apps.caching.container import build_cache_service

from .repositories import CategoryRepository, ProductRepository
from .services import CategoryService, ProductCatalog


def build_product_catalog() -> ProductCatalog:
    return ProductCatalog(products=ProductRepository(), cache=build_cache_service())


def build_category_service() -> CategoryService:
    return CategoryService(categories=CategoryRepository(), cache=build_cache_service())
