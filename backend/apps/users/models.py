from django.contrib.auth.models import AbstractUser
from django.db import models


class UserTier(models.TextChoices):
    NATURAL = "NATURAL", "Natural person"
    EMPRESA = "EMPRESA", "Business account"


class User(AbstractUser):
    # id, username, email, password, is_active, is_staff, is_superuser, groups, user_permissions are inherited
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    tier = models.CharField(
        max_length=16, choices=UserTier.choices, default=UserTier.NATURAL
    )
    # Accounts must be approved by an admin before they can shop
    validated = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(blank=True, null=True)

    def __str__(self):
        return self.username

    @property
    def can_shop(self) -> bool:
        return bool(self.is_active and self.validated and self.deleted_at is None)
