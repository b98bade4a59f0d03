from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterator, List, Optional, Protocol, Sequence


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS})


class AppointmentType(str, Enum):
    SCHEDULED = "scheduled"
    INSTANT = "instant"  # "join now": scheduled_time is the booking time


class ConsultationType(str, Enum):
    VIDEO = "video"
    CHAT = "chat"


@dataclass(frozen=True)
class AppointmentDto:
    id: str
    patient_id: str
    doctor_id: str
    type: AppointmentType
    scheduled_time: datetime
    status: AppointmentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    consultation_type: ConsultationType = ConsultationType.VIDEO
    symptoms: Optional[List[str]] = None
    notes: Optional[str] = None
    severity: Optional[str] = None
    duration: Optional[str] = None
    is_paid: bool = False
    payment_id: Optional[str] = None
    waiting_room_joined_at: Optional[datetime] = None
    waiting_room_left_at: Optional[datetime] = None
    version: int = 1

    @property
    def is_waiting(self) -> bool:
        return self.status == AppointmentStatus.SCHEDULED and self.waiting_room_joined_at is not None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def involves(self, user_id: str) -> bool:
        return user_id in (self.patient_id, self.doctor_id)


@dataclass(frozen=True)
class AppointmentFilter:
    """Conjunction of optional predicates; ``None`` means "any"."""

    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    statuses: Optional[FrozenSet[AppointmentStatus]] = None
    waiting: Optional[bool] = None
    is_paid: Optional[bool] = None
    scheduled_after: Optional[datetime] = None  # exclusive
    scheduled_before: Optional[datetime] = None  # exclusive

    def matches(self, appt: AppointmentDto) -> bool:
        if self.patient_id is not None and appt.patient_id != self.patient_id:
            return False
        if self.doctor_id is not None and appt.doctor_id != self.doctor_id:
            return False
        if self.statuses is not None and appt.status not in self.statuses:
            return False
        if self.waiting is not None and (appt.waiting_room_joined_at is not None) != self.waiting:
            return False
        if self.is_paid is not None and appt.is_paid != self.is_paid:
            return False
        if self.scheduled_after is not None and not appt.scheduled_time > self.scheduled_after:
            return False
        if self.scheduled_before is not None and not appt.scheduled_time < self.scheduled_before:
            return False
        return True


# Order specs are field names; a leading "-" sorts that field descending.
SCHEDULE_ORDER = ("scheduled_time", "id")
WAITING_ROOM_ORDER = ("waiting_room_joined_at", "id")


class Subscription(Protocol):
    def next_change(self, timeout: Optional[float] = None) -> Optional[AppointmentDto]:
        ...

    def close(self) -> None:
        ...

    @property
    def closed(self) -> bool:
        ...


class AppointmentsRepository(Protocol):
    def get(self, appointment_id: str) -> Optional[AppointmentDto]:
        ...

    def create(self, appointment: AppointmentDto) -> AppointmentDto:
        ...

    def put(self, appointment: AppointmentDto, expected_version: int) -> AppointmentDto:
        """Write ``appointment`` only if the stored version still equals ``expected_version``.

        Raises StoreConflict when another write got there first and RecordNotFound
        when the record is gone. Returns the stored record with its new version.
        """
        ...

    def query(self, filter: AppointmentFilter, order: Sequence[str] = ()) -> Iterator[AppointmentDto]:
        ...

    def subscribe(self, filter: AppointmentFilter) -> Subscription:
        ...

    def record_payment(self, appointment_id: str, payment_id: str, expected_version: int) -> AppointmentDto:
        ...
