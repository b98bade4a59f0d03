from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
import logging

from fastapi import HTTPException

from ..ports.user_repo import UserDto, UserRepository, UserRole

logger = logging.getLogger(__name__)


@dataclass
class DoctorDirectory:
    """Read side of the doctor listing patients book from.

    ``is_available`` answers whether a doctor has no active appointment near a
    slot; it is only consulted when a search asks for a specific time.
    """

    user_repo: UserRepository
    is_available: Optional[Callable[[str, datetime], bool]] = None

    def search(
        self,
        query: Optional[str] = None,
        specialization: Optional[str] = None,
        available_at: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[UserDto]:
        doctors = self.user_repo.list_by_role(
            UserRole.DOCTOR,
            name_contains=(query or "").strip() or None,
            specialization=(specialization or "").strip() or None,
            limit=limit,
            offset=offset,
        )
        if available_at is None or self.is_available is None:
            return doctors
        free = [d for d in doctors if self.is_available(d.id, available_at)]
        logger.debug(f"{len(free)} of {len(doctors)} doctors free at {available_at.isoformat()}")
        return free

    def get(self, doctor_id: str) -> UserDto:
        user = self.user_repo.get_by_id(doctor_id)
        if not user or user.role != UserRole.DOCTOR:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return user
