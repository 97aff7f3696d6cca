from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class CategoryDTO:
    id: int
    name: str
    slug: str
    active: bool = True
    order: int = 0


@dataclass
class ProductDTO:
    id: int
    sku: str
    name: str
    slug: str
    base_price: Decimal
    wholesale_price: Optional[Decimal]
    stock: int
    unit: str
    active: bool
    featured: bool
    category: Optional[CategoryDTO]
    brand: Optional[str] = None
    main_image: Optional[str] = None


"""DTO dataclasses only. Mapping logic lives in mappers.py."""
