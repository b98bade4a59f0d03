from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.ports.notifications_repo import NotificationDto
from ..application.services.notification_inbox import NotificationInbox
from ..schemas.common.common import MessageResponse
from ..schemas.notifications.notification import NotificationResponse, UnreadCountResponse
from .deps import get_notification_inbox

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _to_response(n: NotificationDto) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        body=n.body,
        data=n.data,
        is_read=n.is_read,
        created_at=n.created_at,
    )


@router.get("/", response_model=List[NotificationResponse])
def get_notifications(
    read: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    return [_to_response(n) for n in inbox.list(is_read=read, limit=limit, offset=offset)]


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(inbox: NotificationInbox = Depends(get_notification_inbox)):
    return UnreadCountResponse(unread=inbox.unread_count())


@router.put("/read-all", response_model=MessageResponse)
def mark_all_read(inbox: NotificationInbox = Depends(get_notification_inbox)):
    updated = inbox.mark_all_read()
    return MessageResponse(message=f"{updated} notifications marked as read")


@router.put("/{notification_id}/read", response_model=MessageResponse)
def mark_read(notification_id: str, inbox: NotificationInbox = Depends(get_notification_inbox)):
    inbox.mark_read(notification_id)
    return MessageResponse(message="Notification marked as read")


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(notification_id: str, inbox: NotificationInbox = Depends(get_notification_inbox)):
    inbox.delete(notification_id)
    return MessageResponse(message="Notification deleted")
