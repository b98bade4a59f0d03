from fastapi import APIRouter, Depends
import logging

from ..application.ports.user_repo import UserDto
from ..application.services.profile_service import ProfileService
from ..schemas.common.common import MessageResponse
from ..schemas.users.user import ProfileRegister, ProfileResponse, PushTokenUpdate
from .deps import get_current_user, get_profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _to_response(user: UserDto) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        name=user.name,
        role=user.role,
        specialization=user.specialization,
        has_push_token=bool(user.fcm_token),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.post("/me", response_model=ProfileResponse)
def register_profile(
    profile: ProfileRegister,
    current_user: str = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
):
    user = profile_service.register(current_user, profile.name, profile.role, profile.specialization)
    logger.info(f"Profile registered for user {current_user} as {user.role.value}")
    return _to_response(user)


@router.get("/me", response_model=ProfileResponse)
def get_profile(
    current_user: str = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
):
    return _to_response(profile_service.get_profile(current_user))


@router.put("/me/fcm-token", response_model=MessageResponse)
def update_push_token(
    payload: PushTokenUpdate,
    current_user: str = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
):
    profile_service.set_push_token(current_user, payload.token)
    message = "Push token updated" if payload.token else "Push token cleared"
    return MessageResponse(message=message)
