import logging

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ...application.ports.notifier import NotificationDispatcher, NotificationIntent
from ...application.services.notification_intents import render
from ..persistence.sqlalchemy.repositories.notification_repository_sql import SqlNotificationsRepository

logger = logging.getLogger(__name__)


class InboxDispatcher(NotificationDispatcher):
    """Stores each intent as an in-app notification for its recipient.

    Opens its own session: delivery may run after the request's session is gone.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def deliver(self, intent: NotificationIntent) -> None:
        title, body = render(intent)
        with Session(self.engine) as session:
            n = SqlNotificationsRepository(session).add(
                user_id=intent.recipient_id,
                type=intent.event.value,
                title=title,
                body=body,
                data=intent.payload,
            )
        logger.info(f"Inbox notification {n.id} ({intent.event.value}) stored for user {intent.recipient_id}")
