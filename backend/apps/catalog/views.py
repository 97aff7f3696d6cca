from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiResponse

from apps.api.schemas import ErrorResponseSerializer
from apps.common import get_logger
from apps.common.errors import NotFoundError
from .commands import ProductListQuery
from .container import build_category_service, build_product_catalog
from .serializers import (
    CategoryDetailSerializer,
    CategorySerializer,
    ProductPatchSerializer,
    ProductReadSerializer,
)

logger = get_logger(__name__).bind(component="catalog", layer="view")


@extend_schema(tags=["Catalog"])
class ProductListView(APIView):
    permission_classes = [AllowAny]
    service = build_product_catalog()
    log = logger.bind(view="ProductListView")

    @extend_schema(
        operation_id="products_list",
        summary="List active products",
        description="Featured products first, then newest. Cached results may be served.",
        parameters=[
            OpenApiParameter(name="categoryId", type=int, required=False),
            OpenApiParameter(name="featured", type=bool, required=False),
            OpenApiParameter(name="limit", type=int, required=False),
            OpenApiParameter(name="offset", type=int, required=False),
        ],
        responses={200: ProductReadSerializer(many=True)},
    )
    def get(self, request):
        query = ProductListQuery.from_raw(request.query_params)
        self.log.debug("Handling product list request", **query.as_filters())
        products = self.service.list_products(query)
        return Response(ProductReadSerializer(products, many=True).data)


@extend_schema(tags=["Catalog"])
class ProductDetailView(APIView):
    service = build_product_catalog()
    log = logger.bind(view="ProductDetailView")

    def get_permissions(self):
        if self.request.method == "PATCH":
            return [IsAdminUser()]
        return [AllowAny()]

    @extend_schema(
        operation_id="products_retrieve",
        summary="Get product",
        responses={
            200: ProductReadSerializer,
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request, product_id: int):
        dto = self.service.get_by_id(product_id)
        if dto is None:
            raise NotFoundError("Product")
        return Response(ProductReadSerializer(dto).data)

    @extend_schema(
        summary="Update product (staff)",
        description="Partial update. Invalidates the product, product lists and, when stock or availability change, cached carts.",
        request=ProductPatchSerializer,
        responses={
            200: ProductReadSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            403: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def patch(self, request, product_id: int):
        serializer = ProductPatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.log.info(
            "Staff product update",
            product_id=product_id,
            actor_id=request.user.id,
            fields=sorted(serializer.validated_data),
        )
        dto = self.service.update_product(product_id, dict(serializer.validated_data))
        return Response(ProductReadSerializer(dto).data)


@extend_schema(tags=["Catalog"])
class CategoryListView(APIView):
    permission_classes = [AllowAny]
    service = build_category_service()

    @extend_schema(summary="List categories", responses={200: CategorySerializer(many=True)})
    def get(self, request):
        return Response(CategorySerializer(self.service.list_categories(), many=True).data)


@extend_schema(tags=["Catalog"])
class CategoryDetailView(APIView):
    permission_classes = [AllowAny]
    service = build_category_service()

    @extend_schema(
        summary="Get category",
        responses={
            200: CategoryDetailSerializer,
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request, category_id: int):
        return Response(CategoryDetailSerializer(self.service.get_category(category_id)).data)
