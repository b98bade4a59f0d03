from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.services.doctor_directory import DoctorDirectory
from ..schemas.doctors.doctor import DoctorResponse
from ..utils import to_naive_utc
from .deps import get_doctor_directory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("", response_model=List[DoctorResponse])
def get_doctors(
    q: Optional[str] = Query(None, max_length=100, description="Part of the doctor's name"),
    specialization: Optional[str] = Query(None, max_length=100),
    available_at: Optional[datetime] = Query(None, description="Only doctors free around this slot"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    directory: DoctorDirectory = Depends(get_doctor_directory),
):
    doctors = directory.search(
        query=q,
        specialization=specialization,
        available_at=to_naive_utc(available_at),
        limit=limit,
        offset=offset,
    )
    return [DoctorResponse.from_dto(d) for d in doctors]


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(doctor_id: str, directory: DoctorDirectory = Depends(get_doctor_directory)):
    return DoctorResponse.from_dto(directory.get(doctor_id))
