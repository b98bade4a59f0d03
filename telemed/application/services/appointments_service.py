import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from ..errors import BookingRejected, InvalidTransition, LifecycleError, NotAuthorized, RecordNotFound
from ..ports.appointments_repo import (
    ACTIVE_STATUSES,
    AppointmentDto,
    AppointmentFilter,
    AppointmentStatus,
    AppointmentType,
    AppointmentsRepository,
    ConsultationType,
    SCHEDULE_ORDER,
)
from ..ports.audit_logger import AuditLogger
from ..ports.identity import IdentityProvider
from ..ports.notifier import NotificationDispatcher, NotificationIntent
from ..ports.user_repo import UserRole
from . import lifecycle
from .lifecycle import Actor, Command
from ...utils import utcnow

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class AppointmentsService:
    """Runs lifecycle commands as read, reduce, compare-and-swap write, then notify."""

    repo: AppointmentsRepository
    identity: IdentityProvider
    notifier: NotificationDispatcher
    audit: Optional[AuditLogger] = None
    clock: Callable[[], datetime] = utcnow
    booking_slot_minutes: int = 30
    id_factory: Callable[[], str] = field(default=_new_id)

    def _actor(self) -> Actor:
        actor_id = self.identity.current_actor_id()
        return Actor(id=actor_id, role=self.identity.role(actor_id))

    def _load(self, appointment_id: str) -> AppointmentDto:
        appt = self.repo.get(appointment_id)
        if appt is None:
            raise RecordNotFound("Appointment not found", appointment_id)
        return appt

    def _audit(self, action: str, actor_id: str, appointment_id: Optional[str], success: bool, **details) -> None:
        if self.audit is not None:
            self.audit.log(action, actor_id, appointment_id=appointment_id, success=success, details=details or None)

    def _dispatch(self, intents: Iterable[NotificationIntent]) -> None:
        # Delivery is best effort; the write has already committed.
        for intent in intents:
            try:
                self.notifier.deliver(intent)
            except Exception as e:
                logger.warning(f"Could not hand off {intent.event.value} notification for {intent.recipient_id}: {e}")

    def _execute(self, appointment_id: str, command: Command) -> AppointmentDto:
        actor = self._actor()
        try:
            current = self._load(appointment_id)
            result = lifecycle.apply_command(current, command, actor, self.clock())
            stored = self.repo.put(result.appointment, expected_version=current.version)
        except LifecycleError as e:
            self._audit(command.value, actor.id, appointment_id, success=False, error=type(e).__name__, reason=e.message)
            logger.info(f"Rejected {command.value} on appointment {appointment_id} by {actor.id}: {type(e).__name__}: {e.message}")
            raise
        self._audit(command.value, actor.id, appointment_id, success=True, status=stored.status.value)
        logger.info(f"Appointment {appointment_id}: {command.value} by {actor.id} -> {stored.status.value}")
        self._dispatch(result.intents)
        return stored

    # Commands

    def book(
        self,
        doctor_id: str,
        appointment_type: AppointmentType = AppointmentType.SCHEDULED,
        scheduled_time: Optional[datetime] = None,
        consultation_type: ConsultationType = ConsultationType.VIDEO,
        symptoms: Optional[List[str]] = None,
        notes: Optional[str] = None,
        severity: Optional[str] = None,
        duration: Optional[str] = None,
    ) -> AppointmentDto:
        actor = self._actor()
        now = self.clock()
        try:
            doctor_role = self.identity.role(doctor_id)
            if doctor_role is None:
                raise RecordNotFound("Doctor not found")
            result = lifecycle.book(
                self.id_factory(),
                actor,
                doctor_id,
                doctor_role,
                appointment_type,
                scheduled_time,
                now,
                consultation_type=consultation_type,
                symptoms=symptoms,
                notes=notes,
                severity=severity,
                duration=duration,
            )
            if appointment_type == AppointmentType.SCHEDULED and not self.is_doctor_available(doctor_id, result.appointment.scheduled_time):
                raise BookingRejected("This time slot is already booked")
            stored = self.repo.create(result.appointment)
        except LifecycleError as e:
            self._audit("book", actor.id, None, success=False, error=type(e).__name__, reason=e.message)
            raise
        self._audit("book", actor.id, stored.id, success=True, doctor_id=doctor_id)
        logger.info(f"Appointment {stored.id} booked by {actor.id} with doctor {doctor_id}")
        self._dispatch(result.intents)
        return stored

    def join_waiting_room(self, appointment_id: str) -> AppointmentDto:
        return self._execute(appointment_id, Command.JOIN_WAITING_ROOM)

    def leave_waiting_room(self, appointment_id: str) -> AppointmentDto:
        return self._execute(appointment_id, Command.LEAVE_WAITING_ROOM)

    def start(self, appointment_id: str) -> AppointmentDto:
        return self._execute(appointment_id, Command.START)

    def complete(self, appointment_id: str) -> AppointmentDto:
        return self._execute(appointment_id, Command.COMPLETE)

    def cancel(self, appointment_id: str) -> AppointmentDto:
        return self._execute(appointment_id, Command.CANCEL)

    # Reads

    def get(self, appointment_id: str) -> AppointmentDto:
        actor_id = self.identity.current_actor_id()
        appt = self._load(appointment_id)
        if not appt.involves(actor_id):
            raise NotAuthorized("Not a participant of this appointment", appointment_id)
        return appt

    def _own_filter(self, **kwargs) -> AppointmentFilter:
        actor_id = self.identity.current_actor_id()
        if self.identity.role(actor_id) == UserRole.DOCTOR:
            return AppointmentFilter(doctor_id=actor_id, **kwargs)
        return AppointmentFilter(patient_id=actor_id, **kwargs)

    def list_mine(self, status: Optional[AppointmentStatus] = None) -> List[AppointmentDto]:
        statuses = frozenset({status}) if status is not None else None
        return list(self.repo.query(self._own_filter(statuses=statuses), SCHEDULE_ORDER))

    def upcoming(self) -> List[AppointmentDto]:
        """Active appointments of the current user whose slot is still ahead."""
        flt = self._own_filter(statuses=ACTIVE_STATUSES, scheduled_after=self.clock())
        return list(self.repo.query(flt, SCHEDULE_ORDER))

    def pending_payments(self) -> List[AppointmentDto]:
        actor_id = self.identity.current_actor_id()
        flt = AppointmentFilter(
            patient_id=actor_id,
            is_paid=False,
            statuses=frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED}),
        )
        return list(self.repo.query(flt, SCHEDULE_ORDER))

    def is_doctor_available(self, doctor_id: str, at: datetime) -> bool:
        window = timedelta(minutes=self.booking_slot_minutes)
        flt = AppointmentFilter(
            doctor_id=doctor_id,
            statuses=ACTIVE_STATUSES,
            scheduled_after=at - window,
            scheduled_before=at + window,
        )
        return next(iter(self.repo.query(flt)), None) is None


@dataclass
class PaymentLinkService:
    """Write path of the payment collaborator.

    Only ``is_paid`` and ``payment_id`` are touched; the lifecycle never computes them.
    """

    repo: AppointmentsRepository
    identity: IdentityProvider
    audit: Optional[AuditLogger] = None

    def record_payment(self, appointment_id: str, payment_id: str) -> AppointmentDto:
        actor_id = self.identity.current_actor_id()
        appt = self.repo.get(appointment_id)
        if appt is None:
            raise RecordNotFound("Appointment not found", appointment_id)
        if actor_id != appt.patient_id:
            raise NotAuthorized("Only the appointment's patient can pay for it", appointment_id)
        if appt.status == AppointmentStatus.CANCELLED:
            raise InvalidTransition("Cannot pay for a cancelled appointment", appointment_id)
        if appt.is_paid:
            raise InvalidTransition("Appointment is already paid", appointment_id)
        stored = self.repo.record_payment(appointment_id, payment_id, expected_version=appt.version)
        if self.audit is not None:
            self.audit.log("record_payment", actor_id, appointment_id=appointment_id, details={"payment_id": payment_id})
        logger.info(f"Payment {payment_id} recorded for appointment {appointment_id}")
        return stored
