from apps.common.repository import GenericRepository
from .models import User


class UserRepository(GenericRepository[User]):
    def __init__(self):
        super().__init__(User)

    def is_session_active(self, user_id: int) -> bool:
        """The account exists, is active, approved and not soft-deleted."""
        return self.model.objects.filter(
            id=user_id,
            is_active=True,
            validated=True,
            deleted_at__isnull=True,
        ).exists()
