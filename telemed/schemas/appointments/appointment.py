# telemed/schemas/appointments/appointment.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from ...application.ports.appointments_repo import AppointmentDto, AppointmentStatus, AppointmentType, ConsultationType
from ...utils import to_naive_utc

class AppointmentCreate(BaseModel):
    doctor_id: str
    type: AppointmentType = AppointmentType.SCHEDULED
    scheduled_time: Optional[datetime] = None  # ignored for instant appointments
    consultation_type: ConsultationType = ConsultationType.VIDEO
    symptoms: Optional[List[str]] = Field(default=None, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=2000)
    severity: Optional[str] = None
    duration: Optional[str] = None

    @field_validator("scheduled_time")
    @classmethod
    def _to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # the store keeps naive UTC timestamps
        return to_naive_utc(v)

class AppointmentResponse(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    type: AppointmentType
    scheduled_time: datetime
    status: AppointmentStatus
    consultation_type: ConsultationType
    symptoms: Optional[List[str]] = None
    notes: Optional[str] = None
    severity: Optional[str] = None
    duration: Optional[str] = None
    is_paid: bool
    payment_id: Optional[str] = None
    waiting_room_joined_at: Optional[datetime] = None
    waiting_room_left_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int

    @classmethod
    def from_dto(cls, a: AppointmentDto) -> "AppointmentResponse":
        return cls(
            id=a.id,
            patient_id=a.patient_id,
            doctor_id=a.doctor_id,
            type=a.type,
            scheduled_time=a.scheduled_time,
            status=a.status,
            consultation_type=a.consultation_type,
            symptoms=a.symptoms,
            notes=a.notes,
            severity=a.severity,
            duration=a.duration,
            is_paid=a.is_paid,
            payment_id=a.payment_id,
            waiting_room_joined_at=a.waiting_room_joined_at,
            waiting_room_left_at=a.waiting_room_left_at,
            created_at=a.created_at,
            updated_at=a.updated_at,
            version=a.version,
        )

class PaymentRecord(BaseModel):
    payment_id: str = Field(min_length=1, max_length=255)

class WaitingEntryResponse(BaseModel):
    position: int
    wait_seconds: int
    appointment: AppointmentResponse

class WaitingPositionResponse(BaseModel):
    appointment_id: str
    waiting: bool
    position: Optional[int] = None
    wait_seconds: Optional[int] = None
