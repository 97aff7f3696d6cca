from decimal import Decimal
from typing import Optional

from django.db.models import Prefetch

from apps.common.repository import GenericRepository
from .models import Cart, CartItem


class CartRepository(GenericRepository[Cart]):
    def __init__(self):
        super().__init__(Cart)

    def get_with_items(self, user_id: int) -> Optional[Cart]:
        items = CartItem.objects.select_related("product__category").order_by(
            "created_at", "id"
        )
        return (
            self.model.objects.prefetch_related(Prefetch("items", queryset=items))
            .filter(user_id=user_id)
            .first()
        )

    def touch(self, cart: Cart) -> Cart:
        # auto_now refreshes updated_at on save
        cart.save(update_fields=["updated_at"])
        return cart


class CartItemRepository(GenericRepository[CartItem]):
    def __init__(self):
        super().__init__(CartItem)

    def get_with_product(self, **filters) -> Optional[CartItem]:
        return (
            self.model.objects.select_related("cart", "product__category")
            .filter(**filters)
            .first()
        )

    def get_for_update(self, **filters) -> Optional[CartItem]:
        return (
            self.model.objects.select_related("cart", "product__category")
            .select_for_update(of=("self",))
            .filter(**filters)
            .first()
        )

    def set_quantity(self, item: CartItem, quantity: int, unit_price: Decimal) -> CartItem:
        item.quantity = quantity
        item.unit_price = unit_price
        item.save(update_fields=["quantity", "unit_price", "updated_at"])
        return item

    def delete_for_cart(self, cart_id: int) -> int:
        deleted, _ = self.model.objects.filter(cart_id=cart_id).delete()
        return deleted
