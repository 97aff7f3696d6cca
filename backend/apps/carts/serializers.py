from rest_framework import serializers

from apps.catalog.serializers import CategorySerializer


def _money(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class CartProductSnapshotSerializer(serializers.Serializer):
    # Live product fields needed for stock and availability checks
    id = serializers.IntegerField()
    sku = serializers.CharField()
    name = serializers.CharField()
    stock = serializers.IntegerField()
    unit = serializers.CharField()
    active = serializers.BooleanField()
    mainImage = serializers.CharField(source="main_image", allow_null=True)
    category = CategorySerializer(allow_null=True)


class CartItemReadSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    productId = serializers.IntegerField(source="product_id")
    quantity = serializers.IntegerField()
    unitPrice = _money(source="unit_price")
    discount = serializers.DecimalField(max_digits=5, decimal_places=2)
    subtotal = _money()
    active = serializers.BooleanField(source="product_active")
    product = CartProductSnapshotSerializer(allow_null=True)


class CartReadSerializer(serializers.Serializer):
    """Renders ``{"cart": CartDTO, "totals": CartTotals}``."""

    id = serializers.IntegerField(source="cart.id")
    items = CartItemReadSerializer(source="cart.items", many=True)
    hiddenItems = serializers.IntegerField(source="cart.hidden_items")
    totalItems = serializers.IntegerField(source="totals.total_items")
    subtotal = _money(source="totals.subtotal")
    totalDiscount = _money(source="totals.total_discount")
    total = _money(source="totals.total")
    updatedAt = serializers.CharField(source="cart.updated_at", allow_null=True)


class CartItemWriteSerializer(serializers.Serializer):
    productId = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class CartReplaceSerializer(serializers.Serializer):
    items = CartItemWriteSerializer(many=True, allow_empty=True)


class CartItemQuantitySerializer(serializers.Serializer):
    # Zero or below removes the line
    quantity = serializers.IntegerField()
