from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class NotificationDto:
    id: str
    user_id: str
    type: str
    title: str
    body: str
    data: Optional[Dict[str, Any]]
    is_read: bool
    created_at: datetime


class NotificationsRepository(Protocol):
    def add(self, user_id: str, type: str, title: str, body: str, data: Optional[Dict[str, Any]]) -> NotificationDto:
        ...

    def list_for_user(self, user_id: str, is_read: Optional[bool], limit: int, offset: int) -> List[NotificationDto]:
        ...

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[NotificationDto]:
        ...

    def mark_read(self, notification_id: str) -> None:
        ...

    def mark_all_read(self, user_id: str) -> int:
        ...

    def delete(self, notification_id: str) -> None:
        ...

    def unread_count(self, user_id: str) -> int:
        ...
