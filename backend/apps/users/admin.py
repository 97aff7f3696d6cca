from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "tier", "validated", "can_shop", "deleted_at")
    list_filter = ("tier", "validated", "is_active", "is_staff")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Storefront", {"fields": ("phone", "tier", "validated", "deleted_at")}),
    )
