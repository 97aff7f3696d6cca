from dataclasses import asdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from apps.catalog.dtos import CategoryDTO, ProductDTO
from apps.catalog.mappers import ProductMapper

from .dtos import CartDTO, CartItemDTO
from .models import Cart, CartItem
from .totals import line_subtotal


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class CartItemMapper:
    def __init__(self, product_mapper: Optional[ProductMapper] = None) -> None:
        self.product_mapper = product_mapper or ProductMapper()

    def to_dto(self, item: CartItem) -> CartItemDTO:
        unit_price = Decimal(item.unit_price)
        discount = Decimal(item.discount or 0)
        product = getattr(item, "product", None)
        return CartItemDTO(
            id=item.id,
            product_id=item.product_id,
            quantity=int(item.quantity),
            unit_price=unit_price,
            discount=discount,
            subtotal=line_subtotal(item.quantity, unit_price, discount),
            product=self.product_mapper.to_dto(product) if product is not None else None,
            product_active=bool(getattr(product, "active", True)),
        )

    def many_to_dto(self, items: Iterable[CartItem]) -> List[CartItemDTO]:
        return [self.to_dto(i) for i in items]


class CartMapper:
    def __init__(self, item_mapper: Optional[CartItemMapper] = None) -> None:
        self.item_mapper = item_mapper or CartItemMapper()

    def to_dto(self, cart: Cart) -> CartDTO:
        items = self.item_mapper.many_to_dto(cart.items.all())
        return CartDTO(
            id=cart.id,
            user_id=cart.user_id,
            items=items,
            hidden_items=sum(1 for item in items if not item.product_active),
            created_at=_isoformat(getattr(cart, "created_at", None)),
            updated_at=_isoformat(getattr(cart, "updated_at", None)),
        )

    # Cache entries are plain dicts so they survive DTO class reloads
    @staticmethod
    def to_cache(dto: CartDTO) -> Dict[str, Any]:
        return asdict(dto)

    @staticmethod
    def from_cache(payload: Dict[str, Any]) -> CartDTO:
        data = dict(payload)
        data["items"] = [_item_from_cache(raw) for raw in data.get("items", [])]
        return CartDTO(**data)


def _item_from_cache(raw: Dict[str, Any]) -> CartItemDTO:
    data = dict(raw)
    product = data.get("product")
    if product is not None:
        product = dict(product)
        category = product.get("category")
        product["category"] = CategoryDTO(**category) if category is not None else None
        data["product"] = ProductDTO(**product)
    return CartItemDTO(**data)
