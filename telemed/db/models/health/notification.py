# telemed/db/models/health/notification.py
from typing import Optional
from sqlmodel import SQLModel, Field
import uuid

from ....utils import NaiveUTC, utcnow

class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    type: str
    title: str
    body: str
    is_read: bool = Field(default=False)
    data: Optional[str] = Field(default=None)  # JSON object
    created_at: NaiveUTC = Field(default_factory=utcnow)
