import logging

from fastapi import BackgroundTasks, Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..application.services.appointments_service import AppointmentsService, PaymentLinkService
from ..application.services.doctor_directory import DoctorDirectory
from ..application.services.notification_inbox import NotificationInbox
from ..application.services.profile_service import ProfileService
from ..application.services.waiting_room import WaitingRoomService
from ..core.config import settings
from ..database import get_session
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.feed.change_feed import ChangeFeed
from ..infrastructure.identity.request_identity import RequestIdentity
from ..infrastructure.notifications.dispatchers import BackgroundDispatcher
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.notification_repository_sql import SqlNotificationsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from ..utils import decode_jwt_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)

_audit = StdAuditLogger()


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> str:
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authentication required")
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing user ID")
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID")
    return str(user_id)


def get_user_repo(session: Session = Depends(get_session)) -> SqlUserRepository:
    return SqlUserRepository(session)


def get_identity(
    current_user: str = Depends(get_current_user),
    users: SqlUserRepository = Depends(get_user_repo),
) -> RequestIdentity:
    return RequestIdentity(current_user, users)


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


def get_appointments_repo(
    session: Session = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> SqlAppointmentsRepository:
    return SqlAppointmentsRepository(session, feed=feed, page_size=settings.STORE_PAGE_SIZE)


def get_notifier(request: Request, background_tasks: BackgroundTasks) -> BackgroundDispatcher:
    return BackgroundDispatcher(background_tasks, request.app.state.notifier)


def get_appointments_service(
    repo: SqlAppointmentsRepository = Depends(get_appointments_repo),
    identity: RequestIdentity = Depends(get_identity),
    notifier: BackgroundDispatcher = Depends(get_notifier),
) -> AppointmentsService:
    return AppointmentsService(
        repo=repo,
        identity=identity,
        notifier=notifier,
        audit=_audit,
        booking_slot_minutes=settings.BOOKING_SLOT_MINUTES,
    )


def get_payment_service(
    repo: SqlAppointmentsRepository = Depends(get_appointments_repo),
    identity: RequestIdentity = Depends(get_identity),
) -> PaymentLinkService:
    return PaymentLinkService(repo=repo, identity=identity, audit=_audit)


def get_waiting_room_service(
    repo: SqlAppointmentsRepository = Depends(get_appointments_repo),
    identity: RequestIdentity = Depends(get_identity),
) -> WaitingRoomService:
    return WaitingRoomService(repo=repo, identity=identity)


def get_notification_inbox(
    session: Session = Depends(get_session),
    identity: RequestIdentity = Depends(get_identity),
) -> NotificationInbox:
    return NotificationInbox(repo=SqlNotificationsRepository(session), identity=identity)


def get_profile_service(users: SqlUserRepository = Depends(get_user_repo)) -> ProfileService:
    return ProfileService(user_repo=users)


def get_doctor_directory(
    users: SqlUserRepository = Depends(get_user_repo),
    appointments: AppointmentsService = Depends(get_appointments_service),
) -> DoctorDirectory:
    return DoctorDirectory(user_repo=users, is_available=appointments.is_doctor_available)
