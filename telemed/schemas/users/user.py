# telemed/schemas/users/user.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ...application.ports.user_repo import UserRole

class ProfileRegister(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    role: UserRole
    specialization: Optional[str] = Field(default=None, max_length=100)

class ProfileResponse(BaseModel):
    id: str
    name: str
    role: UserRole
    specialization: Optional[str] = None
    has_push_token: bool
    created_at: datetime
    updated_at: datetime

class PushTokenUpdate(BaseModel):
    token: Optional[str] = Field(default=None, max_length=500)
