from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.ports.appointments_repo import AppointmentStatus
from ..application.services.appointments_service import AppointmentsService, PaymentLinkService
from ..application.services.waiting_room import WaitingRoomService
from ..schemas.appointments.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    PaymentRecord,
    WaitingPositionResponse,
)
from .deps import get_appointments_service, get_payment_service, get_waiting_room_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("/", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    appointment_data: AppointmentCreate,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.book(
        doctor_id=appointment_data.doctor_id,
        appointment_type=appointment_data.type,
        scheduled_time=appointment_data.scheduled_time,
        consultation_type=appointment_data.consultation_type,
        symptoms=appointment_data.symptoms,
        notes=appointment_data.notes,
        severity=appointment_data.severity,
        duration=appointment_data.duration,
    )
    return AppointmentResponse.from_dto(appt)


@router.get("/", response_model=List[AppointmentResponse])
def get_my_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return [AppointmentResponse.from_dto(a) for a in appt_service.list_mine(status)]


@router.get("/upcoming", response_model=List[AppointmentResponse])
def get_upcoming_appointments(appt_service: AppointmentsService = Depends(get_appointments_service)):
    return [AppointmentResponse.from_dto(a) for a in appt_service.upcoming()]


@router.get("/pending-payments", response_model=List[AppointmentResponse])
def get_pending_payments(appt_service: AppointmentsService = Depends(get_appointments_service)):
    return [AppointmentResponse.from_dto(a) for a in appt_service.pending_payments()]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.get(appointment_id))


@router.post("/{appointment_id}/waiting-room", response_model=AppointmentResponse)
def join_waiting_room(
    appointment_id: str,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.join_waiting_room(appointment_id))


@router.delete("/{appointment_id}/waiting-room", response_model=AppointmentResponse)
def leave_waiting_room(
    appointment_id: str,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.leave_waiting_room(appointment_id))


@router.get("/{appointment_id}/waiting-room", response_model=WaitingPositionResponse)
def get_waiting_position(
    appointment_id: str,
    waiting_room: WaitingRoomService = Depends(get_waiting_room_service),
):
    entry = waiting_room.position(appointment_id)
    if entry is None:
        return WaitingPositionResponse(appointment_id=appointment_id, waiting=False)
    return WaitingPositionResponse(
        appointment_id=appointment_id,
        waiting=True,
        position=entry.position,
        wait_seconds=int(entry.wait_time.total_seconds()),
    )


@router.post("/{appointment_id}/start", response_model=AppointmentResponse)
def start_appointment(
    appointment_id: str,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.start(appointment_id))


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: str,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.complete(appointment_id))


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.cancel(appointment_id))


@router.post("/{appointment_id}/payment", response_model=AppointmentResponse)
def record_payment(
    appointment_id: str,
    payment: PaymentRecord,
    payments: PaymentLinkService = Depends(get_payment_service),
):
    return AppointmentResponse.from_dto(payments.record_payment(appointment_id, payment.payment_id))
