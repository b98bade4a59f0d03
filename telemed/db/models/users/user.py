# telemed/db/models/users/user.py
from typing import Optional
from sqlmodel import SQLModel, Field

from ....utils import NaiveUTC, utcnow

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(primary_key=True)  # subject of the identity provider's token
    name: str = Field(max_length=100)
    specialization: Optional[str] = Field(default=None, max_length=100, index=True)  # doctors only
    role: str = Field(index=True)  # patient | doctor
    fcm_token: Optional[str] = Field(default=None, max_length=500)
    fcm_token_updated_at: Optional[NaiveUTC] = Field(default=None)
    created_at: NaiveUTC = Field(default_factory=utcnow)
    updated_at: NaiveUTC = Field(default_factory=utcnow)
