import json
import logging
from typing import Any, Dict, Iterator, Optional, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from .....db.models import Appointment
from .....application.errors import RecordNotFound, StoreConflict
from .....application.ports.appointments_repo import (
    AppointmentDto,
    AppointmentFilter,
    AppointmentStatus,
    AppointmentType,
    AppointmentsRepository,
    ConsultationType,
)
from ....feed.change_feed import ChangeFeed, FeedSubscription

logger = logging.getLogger(__name__)

_ORDERABLE = {
    "id": Appointment.id,
    "scheduled_time": Appointment.scheduled_time,
    "created_at": Appointment.created_at,
    "updated_at": Appointment.updated_at,
    "waiting_room_joined_at": Appointment.waiting_room_joined_at,
}


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session, feed: Optional[ChangeFeed] = None, page_size: int = 100):
        self.session = session
        self.feed = feed
        self.page_size = page_size

    def _to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            patient_id=a.patient_id,
            doctor_id=a.doctor_id,
            type=AppointmentType(a.type),
            scheduled_time=a.scheduled_time,
            status=AppointmentStatus(a.status),
            created_at=a.created_at,
            updated_at=a.updated_at,
            consultation_type=ConsultationType(a.consultation_type),
            symptoms=json.loads(a.symptoms) if a.symptoms else None,
            notes=a.notes,
            severity=a.severity,
            duration=a.duration,
            is_paid=bool(a.is_paid),
            payment_id=a.payment_id,
            waiting_room_joined_at=a.waiting_room_joined_at,
            waiting_room_left_at=a.waiting_room_left_at,
            version=a.version,
        )

    def _mutable_values(self, dto: AppointmentDto) -> Dict[str, Any]:
        # id, parties, type, symptoms and payment linkage are not written by lifecycle commands
        return {
            "status": dto.status.value,
            "scheduled_time": dto.scheduled_time,
            "waiting_room_joined_at": dto.waiting_room_joined_at,
            "waiting_room_left_at": dto.waiting_room_left_at,
            "updated_at": dto.updated_at,
        }

    def _publish(self, dto: AppointmentDto) -> None:
        if self.feed is not None:
            self.feed.publish(dto)

    def get(self, appointment_id: str) -> Optional[AppointmentDto]:
        a = self.session.exec(
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        ).first()
        return self._to_dto(a) if a else None

    def create(self, appointment: AppointmentDto) -> AppointmentDto:
        row = Appointment(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            type=appointment.type.value,
            scheduled_time=appointment.scheduled_time,
            status=appointment.status.value,
            consultation_type=appointment.consultation_type.value,
            symptoms=json.dumps(appointment.symptoms) if appointment.symptoms else None,
            notes=appointment.notes,
            severity=appointment.severity,
            duration=appointment.duration,
            is_paid=appointment.is_paid,
            payment_id=appointment.payment_id,
            waiting_room_joined_at=appointment.waiting_room_joined_at,
            waiting_room_left_at=appointment.waiting_room_left_at,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
            version=1,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        dto = self._to_dto(row)
        self._publish(dto)
        return dto

    def _compare_and_swap(self, appointment_id: str, expected_version: int, values: Dict[str, Any]) -> AppointmentDto:
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.version == expected_version)
            .values(version=expected_version + 1, **values)
        )
        try:
            result = self.session.exec(stmt)
            if result.rowcount == 0:
                self.session.rollback()
                if self.get(appointment_id) is None:
                    raise RecordNotFound("Appointment not found", appointment_id)
                logger.warning(f"Stale write on appointment {appointment_id} (expected version {expected_version})")
                raise StoreConflict("Appointment was modified concurrently; re-read and retry", appointment_id)
            self.session.commit()
        except (RecordNotFound, StoreConflict):
            raise
        except Exception as e:
            logger.error(f"Error writing appointment {appointment_id}: {e}")
            self.session.rollback()
            raise
        stored = self.get(appointment_id)
        self._publish(stored)
        return stored

    def put(self, appointment: AppointmentDto, expected_version: int) -> AppointmentDto:
        return self._compare_and_swap(appointment.id, expected_version, self._mutable_values(appointment))

    def record_payment(self, appointment_id: str, payment_id: str, expected_version: int) -> AppointmentDto:
        return self._compare_and_swap(appointment_id, expected_version, {"is_paid": True, "payment_id": payment_id})

    def _statement(self, flt: AppointmentFilter, order: Sequence[str]):
        query = select(Appointment)
        if flt.patient_id is not None:
            query = query.where(Appointment.patient_id == flt.patient_id)
        if flt.doctor_id is not None:
            query = query.where(Appointment.doctor_id == flt.doctor_id)
        if flt.statuses is not None:
            query = query.where(Appointment.status.in_([s.value for s in flt.statuses]))
        if flt.waiting is True:
            query = query.where(Appointment.waiting_room_joined_at.is_not(None))
        elif flt.waiting is False:
            query = query.where(Appointment.waiting_room_joined_at.is_(None))
        if flt.is_paid is not None:
            query = query.where(Appointment.is_paid == flt.is_paid)
        if flt.scheduled_after is not None:
            query = query.where(Appointment.scheduled_time > flt.scheduled_after)
        if flt.scheduled_before is not None:
            query = query.where(Appointment.scheduled_time < flt.scheduled_before)
        for key in order:
            descending = key.startswith("-")
            column = _ORDERABLE[key.lstrip("-")]
            query = query.order_by(column.desc() if descending else column.asc())
        return query

    def query(self, filter: AppointmentFilter, order: Sequence[str] = ()) -> Iterator[AppointmentDto]:
        # streamed in pages of page_size rows
        stmt = self._statement(filter, order).execution_options(yield_per=self.page_size, populate_existing=True)
        for row in self.session.exec(stmt):
            yield self._to_dto(row)

    def subscribe(self, filter: AppointmentFilter) -> FeedSubscription:
        if self.feed is None:
            raise RuntimeError("No change feed configured for this repository")
        return self.feed.subscribe(filter)
