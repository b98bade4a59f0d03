from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Protocol


class NotificationEvent(str, Enum):
    APPOINTMENT_BOOKED = "AppointmentBooked"
    WAITING_ROOM_JOINED = "WaitingRoomJoined"
    WAITING_ROOM_LEFT = "WaitingRoomLeft"
    APPOINTMENT_STARTED = "AppointmentStarted"
    APPOINTMENT_COMPLETED = "AppointmentCompleted"
    APPOINTMENT_CANCELLED = "AppointmentCancelled"


@dataclass(frozen=True)
class NotificationIntent:
    event: NotificationEvent
    recipient_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher(Protocol):
    def deliver(self, intent: NotificationIntent) -> None:
        ...
