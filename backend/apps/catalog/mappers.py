from typing import Iterable, List

from .dtos import CategoryDTO, ProductDTO
from .models import Category, Product


class CategoryMapper:
    @staticmethod
    def to_dto(cat: Category) -> CategoryDTO:
        return CategoryDTO(
            id=cat.id,
            name=cat.name,
            slug=cat.slug,
            active=bool(getattr(cat, "active", True)),
            order=int(getattr(cat, "order", 0) or 0),
        )

    @staticmethod
    def many_to_dto(categories: Iterable[Category]) -> List[CategoryDTO]:
        return [CategoryMapper.to_dto(c) for c in categories]


class ProductMapper:
    @staticmethod
    def to_dto(product: Product) -> ProductDTO:
        category = getattr(product, "category", None)
        return ProductDTO(
            id=product.id,
            sku=product.sku,
            name=product.name,
            slug=product.slug,
            base_price=product.base_price,
            wholesale_price=product.wholesale_price,
            stock=int(product.stock),
            unit=product.unit,
            active=bool(product.active),
            featured=bool(product.featured),
            category=CategoryMapper.to_dto(category) if category is not None else None,
            brand=product.brand,
            main_image=product.main_image,
        )

    @staticmethod
    def many_to_dto(products: Iterable[Product]) -> List[ProductDTO]:
        return [ProductMapper.to_dto(p) for p in products]
