import json
import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select, func

from .....db.models import Notification
from .....application.ports.notifications_repo import NotificationDto, NotificationsRepository

logger = logging.getLogger(__name__)


class SqlNotificationsRepository(NotificationsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, n: Notification) -> NotificationDto:
        data = None
        if n.data:
            try:
                data = json.loads(n.data)
            except json.JSONDecodeError:
                logger.warning(f"Notification {n.id} has malformed data")
                data = None
        return NotificationDto(
            id=n.id,
            user_id=n.user_id,
            type=n.type,
            title=n.title,
            body=n.body,
            data=data,
            is_read=n.is_read,
            created_at=n.created_at,
        )

    def add(self, user_id: str, type: str, title: str, body: str, data: Optional[Dict[str, Any]]) -> NotificationDto:
        n = Notification(
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            data=json.dumps(data) if data else None,
            is_read=False,
        )
        self.session.add(n)
        self.session.commit()
        self.session.refresh(n)
        return self._to_dto(n)

    def list_for_user(self, user_id: str, is_read: Optional[bool], limit: int, offset: int) -> List[NotificationDto]:
        query = select(Notification).where(Notification.user_id == user_id)
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        rows = self.session.exec(
            query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit)
        ).all()
        return [self._to_dto(n) for n in rows]

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[NotificationDto]:
        n = self.session.exec(
            select(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.user_id == user_id)
        ).first()
        return self._to_dto(n) if n else None

    def mark_read(self, notification_id: str) -> None:
        n = self.session.get(Notification, notification_id)
        if not n:
            return
        n.is_read = True
        self.session.add(n)
        self.session.commit()

    def mark_all_read(self, user_id: str) -> int:
        unread = self.session.exec(
            select(Notification).where(Notification.user_id == user_id).where(Notification.is_read == False)  # noqa: E712
        ).all()
        for n in unread:
            n.is_read = True
            self.session.add(n)
        self.session.commit()
        return len(unread)

    def delete(self, notification_id: str) -> None:
        n = self.session.get(Notification, notification_id)
        if not n:
            return
        self.session.delete(n)
        self.session.commit()

    def unread_count(self, user_id: str) -> int:
        return self.session.exec(
            select(func.count()).select_from(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_read == False)  # noqa: E712
        ).one()
