from apps.common.repository import GenericRepository
from .models import ActivityLog


class ActivityLogRepository(GenericRepository[ActivityLog]):
    def __init__(self):
        super().__init__(ActivityLog)

    def for_user(self, user_id: int, limit: int = 50):
        return self.model.objects.filter(user_id=user_id)[:limit]
