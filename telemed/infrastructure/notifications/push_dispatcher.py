from typing import Optional
import logging

import firebase_admin
from firebase_admin import credentials, messaging
from sqlalchemy.engine import Engine
from sqlmodel import Session

from ...application.ports.notifier import NotificationDispatcher, NotificationIntent
from ...application.services.notification_intents import render
from ...core.config import Settings
from ..persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository

logger = logging.getLogger(__name__)

ANDROID_CHANNEL_ID = "telemed_notifications"


def init_firebase_app(settings: Settings) -> Optional[firebase_admin.App]:
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return firebase_admin.get_app()
    if not settings.firebase_configured:
        logger.warning("Firebase credentials are not configured; push notifications disabled")
        return None
    cred = credentials.Certificate({
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key": settings.FIREBASE_PRIVATE_KEY,
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "token_uri": "https://oauth2.googleapis.com/token",
    })
    app = firebase_admin.initialize_app(cred, {"projectId": settings.FIREBASE_PROJECT_ID})
    logger.info("Firebase app initialized")
    return app


def build_message(intent: NotificationIntent, fid: str) -> messaging.Message:
    """Build the FCM message for one device, addressed by its installation id."""
    title, body = render(intent)
    # FCM data values must be strings
    data = {k: str(v) for k, v in intent.payload.items() if v is not None}
    data["type"] = intent.event.value
    return messaging.Message(
        fid=fid,
        notification=messaging.Notification(title=title, body=body),
        data=data,
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(channel_id=ANDROID_CHANNEL_ID, sound="default"),
        ),
        apns=messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound="default"))),
    )


class PushDispatcher(NotificationDispatcher):
    """Hands intents to Firebase Cloud Messaging for recipients with a device token."""

    def __init__(self, engine: Engine, app: Optional[firebase_admin.App]) -> None:
        self.engine = engine
        self.app = app

    def _token_for(self, user_id: str) -> Optional[str]:
        with Session(self.engine) as session:
            user = SqlUserRepository(session).get_by_id(user_id)
        return user.fcm_token if user else None

    def deliver(self, intent: NotificationIntent) -> None:
        if self.app is None:
            return
        token = self._token_for(intent.recipient_id)
        if not token:
            logger.info(f"No push token for user {intent.recipient_id}; skipping {intent.event.value} push")
            return
        message_id = messaging.send(build_message(intent, token), app=self.app)
        logger.info(f"Push {intent.event.value} sent to user {intent.recipient_id}: {message_id}")
