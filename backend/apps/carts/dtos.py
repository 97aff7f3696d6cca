from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from apps.catalog.dtos import ProductDTO


@dataclass
class CartItemDTO:
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    discount: Decimal
    subtotal: Decimal
    product: Optional[ProductDTO] = None
    product_active: bool = True


@dataclass
class CartDTO:
    id: int
    user_id: int
    items: List[CartItemDTO] = field(default_factory=list)
    # Lines whose product is inactive; listed with product_active=False, left out of totals
    hidden_items: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class AddItemResult:
    item: CartItemDTO
    updated: bool


@dataclass
class UpdateItemResult:
    item: CartItemDTO
    removed: bool = False


"""DTO dataclasses only. Mapping logic lives in mappers.py."""
