from rest_framework import serializers


class CategorySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    slug = serializers.CharField()


class CategoryDetailSerializer(CategorySerializer):
    active = serializers.BooleanField()
    order = serializers.IntegerField()


class ProductReadSerializer(serializers.Serializer):
    # Matches ProductDTO; prices render as strings
    id = serializers.IntegerField()
    sku = serializers.CharField()
    name = serializers.CharField()
    slug = serializers.CharField()
    basePrice = serializers.DecimalField(source="base_price", max_digits=10, decimal_places=2)
    wholesalePrice = serializers.DecimalField(
        source="wholesale_price", max_digits=10, decimal_places=2, allow_null=True
    )
    stock = serializers.IntegerField()
    unit = serializers.CharField()
    brand = serializers.CharField(allow_null=True)
    active = serializers.BooleanField()
    featured = serializers.BooleanField()
    category = CategorySerializer(allow_null=True)
    mainImage = serializers.CharField(source="main_image", allow_null=True)


class ProductPatchSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, max_length=255)
    basePrice = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    wholesalePrice = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    stock = serializers.IntegerField(min_value=0, required=False)
    active = serializers.BooleanField(required=False)
    featured = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide at least one field to update.")
        return attrs
