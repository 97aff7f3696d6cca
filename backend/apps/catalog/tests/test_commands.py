import unittest
from decimal import Decimal

from apps.catalog.commands import ProductListQuery, ProductUpdateCommand


class ProductListQueryTests(unittest.TestCase):
    def test_defaults(self):
        query = ProductListQuery.from_raw({})
        self.assertEqual(
            query.as_filters(),
            {"category_id": None, "active": True, "featured": None, "limit": 50, "offset": 0},
        )

    def test_limit_is_clamped_and_values_parsed(self):
        query = ProductListQuery.from_raw(
            {"categoryId": "4", "featured": "yes", "limit": "1000", "offset": "-3"}
        )
        self.assertEqual(query.category_id, 4)
        self.assertTrue(query.featured)
        self.assertEqual(query.limit, 100)
        self.assertEqual(query.offset, 0)
        self.assertEqual(ProductListQuery.from_raw({"limit": "0"}).limit, 1)


class ProductUpdateCommandTests(unittest.TestCase):
    def test_only_present_fields_change(self):
        cmd = ProductUpdateCommand.from_raw(
            3, {"basePrice": "19.90", "wholesale_price": None, "active": "false"}
        )
        self.assertEqual(
            cmd.changes,
            {"base_price": Decimal("19.90"), "wholesale_price": None, "active": False},
        )

    def test_invalid_values_raise(self):
        for payload in ({"stock": -1}, {"basePrice": ""}, {"active": "maybe"}, {"name": "  "}):
            with self.assertRaises(ValueError):
                ProductUpdateCommand.from_raw(1, payload)
