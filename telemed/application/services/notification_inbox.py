from dataclasses import dataclass
from typing import List, Optional

from ..errors import RecordNotFound
from ..ports.identity import IdentityProvider
from ..ports.notifications_repo import NotificationDto, NotificationsRepository


@dataclass
class NotificationInbox:
    repo: NotificationsRepository
    identity: IdentityProvider

    def _owned(self, notification_id: str) -> NotificationDto:
        n = self.repo.get_for_user(notification_id, self.identity.current_actor_id())
        if not n:
            raise RecordNotFound("Notification not found")
        return n

    def list(self, is_read: Optional[bool] = None, limit: int = 50, offset: int = 0) -> List[NotificationDto]:
        return self.repo.list_for_user(self.identity.current_actor_id(), is_read, limit, offset)

    def unread_count(self) -> int:
        return self.repo.unread_count(self.identity.current_actor_id())

    def mark_read(self, notification_id: str) -> None:
        self.repo.mark_read(self._owned(notification_id).id)

    def mark_all_read(self) -> int:
        return self.repo.mark_all_read(self.identity.current_actor_id())

    def delete(self, notification_id: str) -> None:
        self.repo.delete(self._owned(notification_id).id)
