from types import SimpleNamespace

from django.test import TestCase
from django.utils import timezone

from apps.users.models import User, UserTier
from apps.users.repositories import UserRepository
from apps.users.session import Session


class SessionTests(TestCase):
    def test_from_user_defaults_tier(self):
        session = Session.from_user(SimpleNamespace(id="4", tier=None))
        self.assertEqual(session, Session(user_id=4, tier=UserTier.NATURAL, validated=False))

    def test_from_user_keeps_business_tier(self):
        user = User(id=5, username="biz", tier=UserTier.EMPRESA, validated=True)
        session = Session.from_user(user)
        self.assertEqual(session.tier, "EMPRESA")
        self.assertTrue(session.validated)


class UserRepositoryTests(TestCase):
    def setUp(self):
        self.repo = UserRepository()

    def _user(self, username, **fields):
        return User.objects.create_user(
            username=username, email=f"{username}@example.com", password="x", **fields
        )

    def test_only_approved_live_accounts_have_active_sessions(self):
        ok = self._user("ok", validated=True)
        pending = self._user("pending")
        disabled = self._user("disabled", validated=True, is_active=False)
        deleted = self._user("deleted", validated=True, deleted_at=timezone.now())
        self.assertTrue(self.repo.is_session_active(ok.id))
        self.assertTrue(ok.can_shop)
        for user in (pending, disabled, deleted):
            self.assertFalse(self.repo.is_session_active(user.id))
            self.assertFalse(user.can_shop)
        self.assertFalse(self.repo.is_session_active(9999))
