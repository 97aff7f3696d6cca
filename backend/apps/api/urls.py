from django.urls import include, path

from apps.caching.views import CacheAdminView
from .views import MutationTokenView

urlpatterns = [
    path("", include("apps.catalog.urls")),
    path("cart/", include("apps.carts.urls")),
    path("csrf-token/", MutationTokenView.as_view(), name="api-csrf-token"),
    path("admin/cache/", CacheAdminView.as_view(), name="api-admin-cache"),
]
