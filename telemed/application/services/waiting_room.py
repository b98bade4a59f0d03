"""Waiting-room queue, derived on every read from the appointment records.

There is no stored queue. A doctor's queue is every ``scheduled`` appointment of
that doctor with ``waiting_room_joined_at`` set, ordered first-joined
first-served with the appointment id as tie-break.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterator, List, Optional

from ..errors import NotAuthorized, RecordNotFound
from ..ports.appointments_repo import (
    AppointmentDto,
    AppointmentFilter,
    AppointmentStatus,
    AppointmentsRepository,
    Subscription,
    WAITING_ROOM_ORDER,
)
from ..ports.identity import IdentityProvider
from ..ports.user_repo import UserRole
from ...utils import utcnow

logger = logging.getLogger(__name__)


def waiting_filter(doctor_id: str) -> AppointmentFilter:
    return AppointmentFilter(
        doctor_id=doctor_id,
        statuses=frozenset({AppointmentStatus.SCHEDULED}),
        waiting=True,
    )


@dataclass(frozen=True)
class WaitingEntry:
    appointment: AppointmentDto
    position: int  # 1-indexed
    wait_time: timedelta


class WaitingRoomQueue:
    """Lazy, restartable view of one doctor's queue.

    Every iteration runs a fresh store query, so two passes may differ if the
    store changed in between. Nothing is cached.
    """

    def __init__(self, repo: AppointmentsRepository, doctor_id: str, clock: Callable[[], datetime] = utcnow):
        self.repo = repo
        self.doctor_id = doctor_id
        self.clock = clock

    def __iter__(self) -> Iterator[AppointmentDto]:
        return iter(self.repo.query(waiting_filter(self.doctor_id), WAITING_ROOM_ORDER))

    def entries(self) -> Iterator[WaitingEntry]:
        now = self.clock()
        for position, appt in enumerate(self, start=1):
            yield WaitingEntry(appointment=appt, position=position, wait_time=now - appt.waiting_room_joined_at)

    def snapshot(self) -> List[WaitingEntry]:
        return list(self.entries())


@dataclass
class WaitingRoomService:
    repo: AppointmentsRepository
    identity: IdentityProvider
    clock: Callable[[], datetime] = utcnow

    def list_waiting(self, doctor_id: str) -> WaitingRoomQueue:
        return WaitingRoomQueue(self.repo, doctor_id, self.clock)

    def for_current_doctor(self) -> WaitingRoomQueue:
        actor_id = self.identity.current_actor_id()
        if self.identity.role(actor_id) != UserRole.DOCTOR:
            raise NotAuthorized("Only doctors have a waiting room")
        return self.list_waiting(actor_id)

    def position(self, appointment_id: str) -> Optional[WaitingEntry]:
        """Queue entry of one appointment, or None when its patient is not waiting."""
        actor_id = self.identity.current_actor_id()
        appt = self.repo.get(appointment_id)
        if appt is None:
            raise RecordNotFound("Appointment not found", appointment_id)
        if not appt.involves(actor_id):
            raise NotAuthorized("Not a participant of this appointment", appointment_id)
        if not appt.is_waiting:
            return None
        for entry in self.list_waiting(appt.doctor_id).entries():
            if entry.appointment.id == appointment_id:
                return entry
        return None

    def watch(self, doctor_id: str) -> Subscription:
        # Every change to the doctor's appointments can move the queue,
        # including records that just stopped waiting.
        return self.repo.subscribe(AppointmentFilter(doctor_id=doctor_id))


def stream_snapshots(
    subscription: Subscription,
    snapshot: Callable[[], List[WaitingEntry]],
    heartbeat_seconds: float,
) -> Iterator[Optional[List[WaitingEntry]]]:
    """Yield the current queue, then a fresh queue after every change.

    ``None`` is yielded when ``heartbeat_seconds`` pass without a change, so a
    transport can keep its connection alive. Stops once the subscription closes.
    """
    try:
        yield snapshot()
        while not subscription.closed:
            change = subscription.next_change(timeout=heartbeat_seconds)
            if change is None:
                if subscription.closed:
                    break
                yield None
                continue
            logger.debug(f"Waiting room change for appointment {change.id}")
            yield snapshot()
    finally:
        subscription.close()
