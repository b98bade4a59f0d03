# telemed/schemas/doctors/doctor.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from ...application.ports.user_repo import UserDto

class DoctorResponse(BaseModel):
    id: str
    name: str
    specialization: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_dto(cls, user: UserDto) -> "DoctorResponse":
        return cls(id=user.id, name=user.name, specialization=user.specialization, created_at=user.created_at)
