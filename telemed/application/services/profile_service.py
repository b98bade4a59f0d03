from dataclasses import dataclass
from typing import Optional
from fastapi import HTTPException

from ..ports.user_repo import UserRepository, UserDto, UserRole


@dataclass
class ProfileService:
    user_repo: UserRepository

    def get_profile(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Profile not found")
        return user

    def register(self, user_id: str, name: str, role: UserRole, specialization: Optional[str] = None) -> UserDto:
        name = (name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Name is required")
        # only doctors are listed by specialization
        if role != UserRole.DOCTOR:
            specialization = None
        specialization = (specialization or "").strip() or None
        existing = self.user_repo.get_by_id(user_id)
        if existing is None:
            return self.user_repo.create(user_id, name, role, specialization)
        if existing.role != role:
            # roles drive every authorization guard; they are fixed at registration
            raise HTTPException(status_code=409, detail="Role cannot be changed")
        self.user_repo.update_profile(user_id, name, specialization)
        return self.user_repo.get_by_id(user_id)

    def set_push_token(self, user_id: str, token: Optional[str]) -> None:
        if token is not None and not token.strip():
            raise HTTPException(status_code=400, detail="Invalid push token")
        self.get_profile(user_id)
        self.user_repo.set_fcm_token(user_id, token)
