from typing import List, Protocol, Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


class UserDto:
    def __init__(self, id: str, name: str, role: UserRole, fcm_token: Optional[str],
                 created_at: datetime, updated_at: datetime, specialization: Optional[str] = None):
        self.id = id
        self.name = name
        self.role = role
        self.fcm_token = fcm_token
        self.created_at = created_at
        self.updated_at = updated_at
        self.specialization = specialization


class UserRepository(Protocol):
    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create(self, user_id: str, name: str, role: UserRole, specialization: Optional[str] = None) -> UserDto:
        ...

    def update_profile(self, user_id: str, name: str, specialization: Optional[str] = None) -> None:
        ...

    def set_fcm_token(self, user_id: str, token: Optional[str]) -> None:
        ...

    def list_by_role(
        self,
        role: UserRole,
        name_contains: Optional[str] = None,
        specialization: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[UserDto]:
        """Users of ``role`` ordered by name; text filters are case-insensitive substring matches."""
        ...
