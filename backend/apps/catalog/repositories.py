from typing import Iterable, Optional

from apps.common.repository import GenericRepository
from .models import Category, Product


class CategoryRepository(GenericRepository[Category]):
    def __init__(self):
        super().__init__(Category)


class ProductRepository(GenericRepository[Product]):
    def __init__(self):
        super().__init__(Product)

    def _base_queryset(self):
        return self.model.objects.select_related("category")

    def get(self, **filters) -> Optional[Product]:
        return self._base_queryset().filter(**filters).first()

    def get_many(self, ids: Iterable[int]):
        return self._base_queryset().filter(id__in=list(ids))

    def get_for_update(self, **filters) -> Optional[Product]:
        # of=("self",) keeps the category row unlocked
        return (
            self._base_queryset()
            .select_for_update(of=("self",))
            .filter(**filters)
            .first()
        )

    def get_many_for_update(self, ids: Iterable[int]):
        """Lock rows in id order so concurrent bulk writers cannot deadlock."""
        return list(
            self._base_queryset()
            .select_for_update(of=("self",))
            .filter(id__in=list(ids))
            .order_by("id")
        )

    def list_filtered(
        self,
        *,
        category_id: Optional[int] = None,
        active: Optional[bool] = True,
        featured: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ):
        qs = self._base_queryset()
        if category_id is not None:
            qs = qs.filter(category_id=category_id)
        if active is not None:
            qs = qs.filter(active=active)
        if featured is not None:
            qs = qs.filter(featured=featured)
        return qs.order_by("-featured", "-created_at", "-id")[offset : offset + limit]
