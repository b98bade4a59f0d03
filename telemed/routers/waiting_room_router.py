import json
import logging
from typing import AsyncIterator, Iterator, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import iterate_in_threadpool
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from ..application.ports.appointments_repo import Subscription
from ..application.services.waiting_room import WaitingEntry, WaitingRoomQueue, WaitingRoomService, stream_snapshots
from ..core.config import settings
from ..database import engine
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..schemas.appointments.appointment import AppointmentResponse, WaitingEntryResponse
from .deps import get_waiting_room_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/waiting-room", tags=["Waiting Room"])


def _entry_response(entry: WaitingEntry) -> WaitingEntryResponse:
    return WaitingEntryResponse(
        position=entry.position,
        wait_seconds=int(entry.wait_time.total_seconds()),
        appointment=AppointmentResponse.from_dto(entry.appointment),
    )


@router.get("", response_model=List[WaitingEntryResponse])
def get_waiting_room(waiting_room: WaitingRoomService = Depends(get_waiting_room_service)):
    return [_entry_response(e) for e in waiting_room.for_current_doctor().entries()]


def _snapshot_for(doctor_id: str):
    # The request session is gone once streaming starts; each snapshot reads on its own session.
    def snapshot() -> List[WaitingEntry]:
        with Session(engine) as session:
            repo = SqlAppointmentsRepository(session, page_size=settings.STORE_PAGE_SIZE)
            return WaitingRoomQueue(repo, doctor_id).snapshot()
    return snapshot


async def _sse_frames(
    request: Request,
    subscription: Subscription,
    snapshots: Iterator[Optional[List[WaitingEntry]]],
) -> AsyncIterator[str]:
    # snapshots block on the feed, so each step runs in the threadpool
    try:
        async for entries in iterate_in_threadpool(snapshots):
            if await request.is_disconnected():
                logger.info("Waiting room stream client disconnected")
                break
            if entries is None:
                yield ": keep-alive\n\n"
                continue
            data = [_entry_response(e).model_dump(mode="json") for e in entries]
            yield f"event: waiting_room\ndata: {json.dumps(data)}\n\n"
    finally:
        # also wakes a threadpool reader still blocked in next_change
        subscription.close()


@router.get("/stream")
def stream_waiting_room(
    request: Request,
    waiting_room: WaitingRoomService = Depends(get_waiting_room_service),
):
    """Server-sent events: the doctor's queue now, then again after every change."""
    doctor_id = waiting_room.for_current_doctor().doctor_id
    subscription = waiting_room.watch(doctor_id)
    logger.info(f"Waiting room stream opened for doctor {doctor_id}")
    snapshots = stream_snapshots(subscription, _snapshot_for(doctor_id), settings.FEED_HEARTBEAT_SECONDS)
    return StreamingResponse(
        _sse_frames(request, subscription, snapshots),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
