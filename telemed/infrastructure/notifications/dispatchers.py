import logging
from typing import List, Sequence

from fastapi import BackgroundTasks
from sqlalchemy.engine import Engine

from ...application.ports.notifier import NotificationDispatcher, NotificationIntent
from ...core.config import Settings
from .inbox_dispatcher import InboxDispatcher
from .push_dispatcher import PushDispatcher, init_firebase_app

logger = logging.getLogger(__name__)


class CompositeDispatcher(NotificationDispatcher):
    """Delivers an intent on every channel; one failing channel does not stop the rest."""

    def __init__(self, dispatchers: Sequence[NotificationDispatcher]) -> None:
        self.dispatchers: List[NotificationDispatcher] = list(dispatchers)

    def deliver(self, intent: NotificationIntent) -> None:
        for dispatcher in self.dispatchers:
            try:
                dispatcher.deliver(intent)
            except Exception as e:
                logger.error(
                    f"{type(dispatcher).__name__} failed to deliver {intent.event.value} to {intent.recipient_id}: {e}",
                    exc_info=True,
                )


class BackgroundDispatcher(NotificationDispatcher):
    """Defers delivery until after the HTTP response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, inner: NotificationDispatcher) -> None:
        self.background_tasks = background_tasks
        self.inner = inner

    def deliver(self, intent: NotificationIntent) -> None:
        self.background_tasks.add_task(self.inner.deliver, intent)


def build_notifier(engine: Engine, settings: Settings) -> NotificationDispatcher:
    dispatchers: List[NotificationDispatcher] = [InboxDispatcher(engine)]
    if settings.PUSH_NOTIFICATIONS_ENABLED:
        app = init_firebase_app(settings)
        if app is not None:
            dispatchers.append(PushDispatcher(engine, app))
    else:
        logger.info("Push notifications disabled; using in-app inbox only")
    return CompositeDispatcher(dispatchers)
