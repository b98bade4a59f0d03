from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from ..ports.appointments_repo import AppointmentDto
from ..ports.notifier import NotificationEvent, NotificationIntent


# Title and body shown to the recipient for each event kind.
_MESSAGES: Dict[NotificationEvent, Tuple[str, str]] = {
    NotificationEvent.APPOINTMENT_BOOKED: (
        "New Appointment Booked",
        "You have a new appointment scheduled with a patient on {scheduled_time}",
    ),
    NotificationEvent.WAITING_ROOM_JOINED: (
        "Patient in Waiting Room",
        "A patient has joined the waiting room.",
    ),
    NotificationEvent.WAITING_ROOM_LEFT: (
        "Patient Left Waiting Room",
        "A patient has left the waiting room.",
    ),
    NotificationEvent.APPOINTMENT_STARTED: (
        "Appointment Started",
        "Your doctor has started your appointment. You can join now.",
    ),
    NotificationEvent.APPOINTMENT_COMPLETED: (
        "Appointment Completed",
        "Appointment status has been updated to: COMPLETED",
    ),
    NotificationEvent.APPOINTMENT_CANCELLED: (
        "Appointment Cancelled",
        "An appointment has been cancelled.",
    ),
}


def build_payload(appointment: AppointmentDto) -> Dict[str, str]:
    return {
        "appointment_id": appointment.id,
        "patient_id": appointment.patient_id,
        "doctor_id": appointment.doctor_id,
        "status": appointment.status.value,
        "scheduled_time": appointment.scheduled_time.isoformat(),
    }


def build_intents(event: NotificationEvent, recipients: Iterable[str], appointment: AppointmentDto) -> List[NotificationIntent]:
    payload = build_payload(appointment)
    return [NotificationIntent(event=event, recipient_id=r, payload=dict(payload)) for r in recipients]


def render(intent: NotificationIntent) -> Tuple[str, str]:
    """Return the (title, body) pair a delivery channel should display."""
    title, body = _MESSAGES[intent.event]
    scheduled = intent.payload.get("scheduled_time")
    if "{scheduled_time}" in body:
        body = body.format(scheduled_time=_format_scheduled(scheduled))
    return title, body


def _format_scheduled(value) -> str:
    if not value:
        return "the requested time"
    try:
        return datetime.fromisoformat(value).strftime("%b %d, %Y at %H:%M")
    except ValueError:
        return str(value)
