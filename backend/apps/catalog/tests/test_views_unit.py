import unittest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import Mock, patch

from rest_framework.test import APIRequestFactory, force_authenticate

from apps.catalog.dtos import CategoryDTO, ProductDTO
from apps.catalog.views import CategoryDetailView, ProductDetailView, ProductListView
from apps.common.errors import NotFoundError


def make_product_dto(product_id=1, name="Drill"):
    return ProductDTO(
        id=product_id,
        sku=f"SKU-{product_id}",
        name=name,
        slug=name.lower(),
        base_price=Decimal("1000.00"),
        wholesale_price=Decimal("800.00"),
        stock=5,
        unit="unit",
        active=True,
        featured=False,
        category=CategoryDTO(id=1, name="Tools", slug="tools"),
    )


class CatalogViewsUnitTests(unittest.TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.service = Mock()
        for view_cls in (ProductListView, ProductDetailView, CategoryDetailView):
            patcher = patch.object(view_cls, "service", self.service)
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_list_passes_parsed_query(self):
        self.service.list_products.return_value = [make_product_dto()]
        request = self.factory.get("/api/products/", {"featured": "true", "limit": "5"})
        response = ProductListView.as_view()(request)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data[0]["basePrice"], "1000.00")
        self.assertEqual(response.data[0]["category"]["slug"], "tools")
        query = self.service.list_products.call_args.args[0]
        self.assertTrue(query.featured)
        self.assertEqual(query.limit, 5)

    def test_detail_not_found(self):
        self.service.get_by_id.return_value = None
        response = ProductDetailView.as_view()(self.factory.get("/api/products/9/"), product_id=9)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")

    def test_patch_requires_staff(self):
        request = self.factory.patch("/api/products/1/", {"stock": 2}, format="json")
        force_authenticate(request, user=SimpleNamespace(id=5, is_authenticated=True, is_staff=False))
        response = ProductDetailView.as_view()(request, product_id=1)
        self.assertEqual(response.status_code, 403)
        self.service.update_product.assert_not_called()

    def test_staff_patch_updates(self):
        self.service.update_product.return_value = make_product_dto()
        request = self.factory.patch("/api/products/1/", {"stock": 2, "active": False}, format="json")
        force_authenticate(request, user=SimpleNamespace(id=5, is_authenticated=True, is_staff=True))
        response = ProductDetailView.as_view()(request, product_id=1)
        self.assertEqual(response.status_code, 200)
        self.service.update_product.assert_called_once_with(1, {"stock": 2, "active": False})

    def test_empty_patch_is_rejected(self):
        request = self.factory.patch("/api/products/1/", {}, format="json")
        force_authenticate(request, user=SimpleNamespace(id=5, is_authenticated=True, is_staff=True))
        response = ProductDetailView.as_view()(request, product_id=1)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")

    def test_category_not_found(self):
        self.service.get_category.side_effect = NotFoundError("Category")
        response = CategoryDetailView.as_view()(self.factory.get("/api/categories/2/"), category_id=2)
        self.assertEqual(response.status_code, 404)
