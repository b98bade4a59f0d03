"""Appointment state machine.

Pure functions of ``(current record, command, actor, now)`` that return the new
record plus the notification intents the transition owes. Nothing here touches
the store; the caller performs the compare-and-swap write.

    scheduled --start--> inProgress --complete--> completed
        |                    |
        +------cancel--------+----------------> cancelled

joinWaitingRoom / leaveWaitingRoom keep the status at ``scheduled`` and only
toggle ``waiting_room_joined_at``.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import BookingRejected, InvalidTransition, NotAuthorized
from ..ports.appointments_repo import (
    AppointmentDto,
    AppointmentStatus,
    AppointmentType,
    ConsultationType,
)
from ..ports.notifier import NotificationEvent, NotificationIntent
from ..ports.user_repo import UserRole
from .notification_intents import build_intents


class Command(str, Enum):
    JOIN_WAITING_ROOM = "joinWaitingRoom"
    LEAVE_WAITING_ROOM = "leaveWaitingRoom"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Actor:
    id: str
    role: Optional[UserRole]


@dataclass(frozen=True)
class TransitionResult:
    appointment: AppointmentDto
    event: NotificationEvent
    intents: List[NotificationIntent]


def _require_patient(appt: AppointmentDto, actor: Actor) -> None:
    if actor.id != appt.patient_id or actor.role != UserRole.PATIENT:
        raise NotAuthorized("Only the appointment's patient can do this", appt.id)


def _require_doctor(appt: AppointmentDto, actor: Actor) -> None:
    if actor.id != appt.doctor_id or actor.role != UserRole.DOCTOR:
        raise NotAuthorized("Only the appointment's doctor can do this", appt.id)


def _require_party(appt: AppointmentDto, actor: Actor) -> None:
    if not appt.involves(actor.id):
        raise NotAuthorized("Not a participant of this appointment", appt.id)


def _join(appt: AppointmentDto, actor: Actor, now: datetime) -> AppointmentDto:
    _require_patient(appt, actor)
    if appt.status != AppointmentStatus.SCHEDULED:
        raise InvalidTransition(f"Cannot join the waiting room of a {appt.status.value} appointment", appt.id)
    if appt.waiting_room_joined_at is not None:
        # re-joining would reset the join time and push the patient to the back
        raise InvalidTransition("Patient is already in the waiting room", appt.id)
    return replace(appt, waiting_room_joined_at=now)


def _leave(appt: AppointmentDto, actor: Actor, now: datetime) -> AppointmentDto:
    _require_patient(appt, actor)
    if not appt.is_waiting:
        raise InvalidTransition("Patient is not in the waiting room", appt.id)
    return replace(appt, waiting_room_joined_at=None, waiting_room_left_at=now)


def _start(appt: AppointmentDto, actor: Actor, now: datetime) -> AppointmentDto:
    _require_doctor(appt, actor)
    if appt.status != AppointmentStatus.SCHEDULED:
        raise InvalidTransition(f"Cannot start a {appt.status.value} appointment", appt.id)
    return replace(appt, status=AppointmentStatus.IN_PROGRESS, waiting_room_joined_at=None)


def _complete(appt: AppointmentDto, actor: Actor, now: datetime) -> AppointmentDto:
    _require_doctor(appt, actor)
    if appt.status != AppointmentStatus.IN_PROGRESS:
        raise InvalidTransition(f"Cannot complete a {appt.status.value} appointment", appt.id)
    return replace(appt, status=AppointmentStatus.COMPLETED)


def _cancel(appt: AppointmentDto, actor: Actor, now: datetime) -> AppointmentDto:
    _require_party(appt, actor)
    return replace(appt, status=AppointmentStatus.CANCELLED, waiting_room_joined_at=None)


def _doctor(appt: AppointmentDto) -> Tuple[str, ...]:
    return (appt.doctor_id,)


def _patient(appt: AppointmentDto) -> Tuple[str, ...]:
    return (appt.patient_id,)


def _both(appt: AppointmentDto) -> Tuple[str, ...]:
    return (appt.patient_id, appt.doctor_id)


_Handler = Callable[[AppointmentDto, Actor, datetime], AppointmentDto]
_Recipients = Callable[[AppointmentDto], Tuple[str, ...]]

# One row per command: guard+mutation, event kind, who hears about it.
TRANSITIONS: Dict[Command, Tuple[_Handler, NotificationEvent, _Recipients]] = {
    Command.JOIN_WAITING_ROOM: (_join, NotificationEvent.WAITING_ROOM_JOINED, _doctor),
    Command.LEAVE_WAITING_ROOM: (_leave, NotificationEvent.WAITING_ROOM_LEFT, _doctor),
    Command.START: (_start, NotificationEvent.APPOINTMENT_STARTED, _patient),
    Command.COMPLETE: (_complete, NotificationEvent.APPOINTMENT_COMPLETED, _both),
    Command.CANCEL: (_cancel, NotificationEvent.APPOINTMENT_CANCELLED, _both),
}


def apply_command(appt: AppointmentDto, command: Command, actor: Actor, now: datetime) -> TransitionResult:
    """Run ``command`` against ``appt``.

    Raises InvalidTransition for terminal records or violated status guards and
    NotAuthorized when the actor may not issue the command. A raised error means
    no intents were produced.
    """
    if appt.is_terminal:
        raise InvalidTransition(f"Appointment is already {appt.status.value}", appt.id)
    handler, event, recipients = TRANSITIONS[command]
    updated = replace(handler(appt, actor, now), updated_at=now)
    return TransitionResult(appointment=updated, event=event, intents=build_intents(event, recipients(updated), updated))


def book(
    appointment_id: str,
    actor: Actor,
    doctor_id: str,
    doctor_role: Optional[UserRole],
    appointment_type: AppointmentType,
    scheduled_time: Optional[datetime],
    now: datetime,
    consultation_type: ConsultationType = ConsultationType.VIDEO,
    symptoms: Optional[List[str]] = None,
    notes: Optional[str] = None,
    severity: Optional[str] = None,
    duration: Optional[str] = None,
) -> TransitionResult:
    """Create a new ``scheduled`` appointment for ``actor`` with ``doctor_id``."""
    if actor.role != UserRole.PATIENT:
        raise NotAuthorized("Only patients can book appointments")
    if doctor_role != UserRole.DOCTOR:
        raise BookingRejected("Selected user is not a doctor")
    if actor.id == doctor_id:
        raise BookingRejected("Cannot book an appointment with yourself")

    if appointment_type == AppointmentType.INSTANT:
        scheduled_time = now
    elif scheduled_time is None:
        raise BookingRejected("A scheduled appointment needs a scheduled time")
    elif scheduled_time <= now:
        raise BookingRejected("Appointment time cannot be in the past")

    appt = AppointmentDto(
        id=appointment_id,
        patient_id=actor.id,
        doctor_id=doctor_id,
        type=appointment_type,
        scheduled_time=scheduled_time,
        status=AppointmentStatus.SCHEDULED,
        created_at=now,
        updated_at=now,
        consultation_type=consultation_type,
        symptoms=list(symptoms) if symptoms else None,
        notes=notes,
        severity=severity,
        duration=duration,
    )
    event = NotificationEvent.APPOINTMENT_BOOKED
    return TransitionResult(appointment=appt, event=event, intents=build_intents(event, _doctor(appt), appt))
