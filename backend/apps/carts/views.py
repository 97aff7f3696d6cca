from drf_spectacular.utils import OpenApiResponse, extend_schema, inline_serializer
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.api.csrf import MutationTokenRequiredMixin
from apps.api.schemas import CSRF_HEADER_PARAMETER, ErrorResponseSerializer
from apps.common import get_logger
from apps.users.session import session_from_request
from .commands import CartItemCommand, CartReplaceCommand
from .container import build_cart_service
from .serializers import (
    CartItemQuantitySerializer,
    CartItemReadSerializer,
    CartItemWriteSerializer,
    CartReadSerializer,
    CartReplaceSerializer,
)
from .totals import calculate_totals

logger = get_logger(__name__).bind(component="carts", layer="view")

MUTATION_ERRORS = {
    400: OpenApiResponse(response=ErrorResponseSerializer),
    401: OpenApiResponse(response=ErrorResponseSerializer),
    403: OpenApiResponse(response=ErrorResponseSerializer),
    404: OpenApiResponse(response=ErrorResponseSerializer),
    422: OpenApiResponse(response=ErrorResponseSerializer),
    429: OpenApiResponse(response=ErrorResponseSerializer),
}


def render_cart(cart):
    return CartReadSerializer({"cart": cart, "totals": calculate_totals(cart.items)}).data


@extend_schema(tags=["Cart"])
class CartView(MutationTokenRequiredMixin, APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "cart"
    service = build_cart_service()
    log = logger.bind(view="CartView")

    @extend_schema(
        summary="Get the current user's cart",
        description="Creates an empty cart on first access. Lines of inactive products are listed with active=false and excluded from totals.",
        responses={
            200: inline_serializer("CartEnvelope", {"cart": CartReadSerializer()}),
            401: OpenApiResponse(response=ErrorResponseSerializer),
            429: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request):
        session = session_from_request(request)
        cart, totals = self.service.get_cart_totals(session)
        return Response({"cart": CartReadSerializer({"cart": cart, "totals": totals}).data})

    @extend_schema(
        summary="Add a product",
        description="Quantities accumulate when the product is already in the cart. The unit price is re-stamped for the caller's tier.",
        parameters=[CSRF_HEADER_PARAMETER],
        request=CartItemWriteSerializer,
        responses={
            201: inline_serializer(
                "CartItemAdded",
                {"message": serializers.CharField(), "item": CartItemReadSerializer()},
            ),
            200: OpenApiResponse(description="Existing line accumulated"),
            **MUTATION_ERRORS,
        },
    )
    def post(self, request):
        serializer = CartItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cmd = CartItemCommand(
            product_id=serializer.validated_data["productId"],
            quantity=serializer.validated_data["quantity"],
        )
        result = self.service.add_item(cmd.product_id, cmd.quantity, session_from_request(request))
        self.log.info(
            "Cart item added via API",
            user_id=request.user.id,
            product_id=cmd.product_id,
            updated=result.updated,
        )
        return Response(
            {
                "message": "Cart quantity updated" if result.updated else "Product added to cart",
                "item": CartItemReadSerializer(result.item).data,
            },
            status=status.HTTP_200_OK if result.updated else status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Replace the cart",
        description="All-or-nothing: every product must exist, be active and in stock before anything changes. Discounts are reset.",
        parameters=[CSRF_HEADER_PARAMETER],
        request=CartReplaceSerializer,
        responses={200: OpenApiResponse(description="Cart replaced"), **MUTATION_ERRORS},
    )
    def put(self, request):
        serializer = CartReplaceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cmd = CartReplaceCommand.from_raw(serializer.validated_data)
        cart = self.service.update_cart(cmd, session_from_request(request))
        return Response({"message": "Cart updated", "cart": render_cart(cart)})

    @extend_schema(
        summary="Clear the cart",
        description="Idempotent; clearing a user without a cart succeeds with cleared=false.",
        parameters=[CSRF_HEADER_PARAMETER],
        responses={200: OpenApiResponse(description="Cart cleared"), **MUTATION_ERRORS},
    )
    def delete(self, request):
        cart = self.service.clear_cart(request.user.id)
        return Response({"message": "Cart cleared", "cleared": cart is not None})


@extend_schema(tags=["Cart"])
class CartItemView(MutationTokenRequiredMixin, APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "cart"
    service = build_cart_service()
    log = logger.bind(view="CartItemView")

    @extend_schema(
        summary="Get a cart line",
        responses={200: CartItemReadSerializer, **MUTATION_ERRORS},
    )
    def get(self, request, item_id: int):
        item = self.service.get_item(item_id, session_from_request(request))
        return Response({"item": CartItemReadSerializer(item).data})

    @extend_schema(
        summary="Set a line quantity",
        description="Sets the absolute quantity; zero or below removes the line.",
        parameters=[CSRF_HEADER_PARAMETER],
        request=CartItemQuantitySerializer,
        responses={200: OpenApiResponse(description="Line updated or removed"), **MUTATION_ERRORS},
    )
    def patch(self, request, item_id: int):
        serializer = CartItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.service.update_item_quantity(
            item_id, serializer.validated_data["quantity"], session_from_request(request)
        )
        message = "Product removed from cart" if result.removed else "Quantity updated"
        return Response(
            {
                "message": message,
                "removed": result.removed,
                "item": CartItemReadSerializer(result.item).data,
            }
        )

    @extend_schema(
        summary="Remove a cart line",
        parameters=[CSRF_HEADER_PARAMETER],
        responses={200: OpenApiResponse(description="Line removed"), **MUTATION_ERRORS},
    )
    def delete(self, request, item_id: int):
        item = self.service.remove_item(item_id, session_from_request(request))
        self.log.info("Cart item removed via API", user_id=request.user.id, item_id=item_id)
        return Response(
            {"message": "Product removed from cart", "item": CartItemReadSerializer(item).data}
        )
