import unittest
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from apps.activity.repositories import ActivityLogRepository
from apps.activity.services import AuditLog
from apps.users.models import User


class DummyAtomic:
    def __call__(self, *args, **kwargs):
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeEntries:
    def __init__(self, fail=False):
        self.fail = fail
        self.rows = []

    def create(self, **data):
        if self.fail:
            raise DatabaseError("disk full")
        self.rows.append(data)
        return data


class AuditLogUnitTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("apps.activity.services.transaction.atomic", DummyAtomic())
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_metadata_is_made_json_safe(self):
        entries = FakeEntries()
        ok = AuditLog(entries).record(
            "cart_item_added", user_id=3, description="Added", unit_price=Decimal("800.00"),
            items=[{"price": Decimal("1.50")}],
        )
        self.assertTrue(ok)
        row = entries.rows[0]
        self.assertEqual(row["metadata"], {"unit_price": "800.00", "items": [{"price": "1.50"}]})
        self.assertEqual(row["user_id"], 3)

    def test_write_failure_is_dropped_and_logged(self):
        with self.assertLogs("apps.activity.services", level="WARNING") as logs:
            ok = AuditLog(FakeEntries(fail=True)).record("cart_cleared", user_id=3)
        self.assertFalse(ok)
        self.assertIn("Audit entry dropped", logs.output[0])


class AuditLogStoreTests(TestCase):
    def test_records_and_lists_entries_for_user(self):
        user = User.objects.create_user(username="audit", email="audit@example.com", password="x")
        repo = ActivityLogRepository()
        audit = AuditLog(repo)
        self.assertTrue(audit.record("cart_cleared", user_id=user.id, description="x" * 300, removed_lines=2))
        entries = list(repo.for_user(user.id))
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].metadata, {"removed_lines": 2})
        self.assertEqual(len(entries[0].description), 255)
