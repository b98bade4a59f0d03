# telemed/db/models/health/appointment.py
from typing import Optional
from sqlmodel import SQLModel, Field
import uuid

from ....utils import NaiveUTC, utcnow

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    patient_id: str = Field(foreign_key="users.id", index=True)
    doctor_id: str = Field(foreign_key="users.id", index=True)
    type: str = Field(default="scheduled")
    scheduled_time: NaiveUTC = Field(index=True)
    status: str = Field(default="scheduled", index=True)
    consultation_type: str = Field(default="video")
    symptoms: Optional[str] = Field(default=None)  # JSON list
    notes: Optional[str] = Field(default=None)
    severity: Optional[str] = Field(default=None)
    duration: Optional[str] = Field(default=None)
    is_paid: bool = Field(default=False)
    payment_id: Optional[str] = Field(default=None)
    waiting_room_joined_at: Optional[NaiveUTC] = Field(default=None, index=True)
    waiting_room_left_at: Optional[NaiveUTC] = Field(default=None)
    created_at: NaiveUTC = Field(default_factory=utcnow)
    updated_at: Optional[NaiveUTC] = Field(default=None)
    version: int = Field(default=1)
