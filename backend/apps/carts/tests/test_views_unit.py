import unittest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import Mock, patch

from django.core.cache import cache
from rest_framework.test import APIRequestFactory, force_authenticate
from rest_framework.throttling import ScopedRateThrottle

from apps.api.csrf import MutationTokenService
from apps.carts.dtos import AddItemResult, CartDTO, CartItemDTO, UpdateItemResult
from apps.carts.totals import calculate_totals
from apps.carts.views import CartItemView, CartView
from apps.common.errors import AuthorizationError, BusinessLogicError, NotFoundError


def make_user(user_id=10, tier="NATURAL"):
    return SimpleNamespace(
        id=user_id,
        pk=user_id,
        tier=tier,
        validated=True,
        is_authenticated=True,
        is_staff=False,
    )


def make_item(item_id=1, product_id=3, quantity=2):
    return CartItemDTO(
        id=item_id,
        product_id=product_id,
        quantity=quantity,
        unit_price=Decimal("1000.00"),
        discount=Decimal("0"),
        subtotal=Decimal("1000.00") * quantity,
    )


def make_cart(items=None):
    return CartDTO(id=4, user_id=10, items=items if items is not None else [make_item()])


class CartViewsUnitTests(unittest.TestCase):
    def setUp(self):
        cache.clear()
        self.factory = APIRequestFactory()
        self.user = make_user()
        self.tokens = MutationTokenService()
        self.service = Mock()
        for view_cls in (CartView, CartItemView):
            patcher = patch.object(view_cls, "service", self.service)
            patcher.start()
            self.addCleanup(patcher.stop)

    def _send(self, method, view_cls, path, data=None, token=True, **kwargs):
        headers = {}
        if token:
            headers["HTTP_X_CSRF_TOKEN"] = self.tokens.issue(self.user.id)
        request = getattr(self.factory, method)(path, data, format="json", **headers)
        force_authenticate(request, user=self.user)
        return view_cls.as_view()(request, **kwargs)

    def test_get_cart_renders_totals(self):
        cart = make_cart()
        self.service.get_cart_totals.return_value = (cart, calculate_totals(cart.items))
        response = self._send("get", CartView, "/api/cart/", token=False)
        self.assertEqual(response.status_code, 200)
        body = response.data["cart"]
        self.assertEqual(body["totalItems"], 2)
        self.assertEqual(body["total"], "2000.00")
        self.assertEqual(body["items"][0]["productId"], 3)
        self.assertEqual(body["hiddenItems"], 0)

    def test_add_new_line_returns_201(self):
        self.service.add_item.return_value = AddItemResult(item=make_item(), updated=False)
        response = self._send("post", CartView, "/api/cart/", {"productId": 3, "quantity": 2})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["message"], "Product added to cart")
        product_id, quantity, session = self.service.add_item.call_args.args
        self.assertEqual((product_id, quantity, session.user_id), (3, 2, 10))

    def test_add_existing_line_returns_200(self):
        self.service.add_item.return_value = AddItemResult(item=make_item(quantity=3), updated=True)
        response = self._send("post", CartView, "/api/cart/", {"productId": 3, "quantity": 1})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["item"]["quantity"], 3)

    def test_mutation_without_token_is_rejected(self):
        response = self._send(
            "post", CartView, "/api/cart/", {"productId": 3, "quantity": 1}, token=False
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["error"]["code"], "CSRF_TOKEN_INVALID")
        self.assertIn("hint", response.data["error"])
        self.service.add_item.assert_not_called()

    def test_token_issued_for_another_user_is_rejected(self):
        request = self.factory.delete(
            "/api/cart/", HTTP_X_CSRF_TOKEN=self.tokens.issue(99)
        )
        force_authenticate(request, user=self.user)
        response = CartView.as_view()(request)
        self.assertEqual(response.data["error"]["code"], "CSRF_TOKEN_INVALID")

    def test_add_validates_payload(self):
        response = self._send("post", CartView, "/api/cart/", {"productId": 3, "quantity": 0})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")

    def test_insufficient_stock_maps_to_422(self):
        self.service.add_item.side_effect = BusinessLogicError(
            "Only 5 units available",
            reason="insufficient_stock",
            details={"productId": 3, "available": 5, "requested": 6},
        )
        response = self._send("post", CartView, "/api/cart/", {"productId": 3, "quantity": 6})
        self.assertEqual(response.status_code, 422)
        error = response.data["error"]
        self.assertEqual(error["code"], "BUSINESS_RULE_VIOLATION")
        self.assertEqual(error["details"]["reason"], "insufficient_stock")
        self.assertEqual(error["details"]["available"], 5)

    def test_replace_cart(self):
        self.service.update_cart.return_value = make_cart([make_item(product_id=5, quantity=1)])
        response = self._send(
            "put", CartView, "/api/cart/", {"items": [{"productId": 5, "quantity": 1}]}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Cart updated")
        cmd = self.service.update_cart.call_args.args[0]
        self.assertEqual(cmd.merged(), {5: 1})

    def test_clear_reports_whether_a_cart_existed(self):
        self.service.clear_cart.return_value = None
        response = self._send("delete", CartView, "/api/cart/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["cleared"])

    def test_patch_zero_reports_removed(self):
        self.service.update_item_quantity.return_value = UpdateItemResult(item=make_item(), removed=True)
        response = self._send(
            "patch", CartItemView, "/api/cart/1/", {"quantity": 0}, item_id=1
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["removed"])
        self.assertEqual(response.data["message"], "Product removed from cart")

    def test_foreign_item_is_forbidden(self):
        self.service.remove_item.side_effect = AuthorizationError(forbidden=True)
        response = self._send("delete", CartItemView, "/api/cart/1/", item_id=1)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["error"]["code"], "FORBIDDEN")

    def test_missing_item_is_not_found(self):
        self.service.get_item.side_effect = NotFoundError("Cart item")
        response = self._send("get", CartItemView, "/api/cart/9/", token=False, item_id=9)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["details"], {"entity": "Cart item"})

    def test_invalid_session_is_unauthorized_without_details(self):
        self.service.get_cart_totals.side_effect = AuthorizationError()
        response = self._send("get", CartView, "/api/cart/", token=False)
        self.assertEqual(response.status_code, 401)
        self.assertNotIn("details", response.data["error"])


class CartThrottleTests(unittest.TestCase):
    def setUp(self):
        cache.clear()
        self.addCleanup(cache.clear)
        self.service = Mock()
        self.service.get_item.return_value = make_item()
        cart = make_cart()
        self.service.get_cart_totals.return_value = (cart, calculate_totals(cart.items))
        patchers = [
            patch.object(CartView, "service", self.service),
            patch.object(CartItemView, "service", self.service),
            patch.object(ScopedRateThrottle, "THROTTLE_RATES", {"cart": "2/min"}),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def _get(self, view_cls, path, user, **kwargs):
        request = APIRequestFactory().get(path)
        force_authenticate(request, user=user)
        return view_cls.as_view()(request, **kwargs)

    def test_cart_endpoints_share_a_per_user_budget(self):
        user = make_user()
        for _ in range(2):
            self.assertEqual(self._get(CartItemView, "/api/cart/1/", user, item_id=1).status_code, 200)
        response = self._get(CartView, "/api/cart/", user)
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.data["error"]["code"], "TOO_MANY_REQUESTS")
        self.assertIn("retryAfter", response.data["error"]["details"])

        other = self._get(CartView, "/api/cart/", make_user(user_id=11))
        self.assertEqual(other.status_code, 200)
