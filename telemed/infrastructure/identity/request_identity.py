from typing import Dict, Optional

from ...application.ports.identity import IdentityProvider
from ...application.ports.user_repo import UserRepository, UserRole


class RequestIdentity(IdentityProvider):
    """Identity of the authenticated caller for the lifetime of one request."""

    def __init__(self, user_id: str, users: UserRepository) -> None:
        self._user_id = user_id
        self._users = users
        self._roles: Dict[str, Optional[UserRole]] = {}

    def current_actor_id(self) -> str:
        return self._user_id

    def role(self, user_id: str) -> Optional[UserRole]:
        if user_id not in self._roles:
            user = self._users.get_by_id(user_id)
            self._roles[user_id] = user.role if user else None
        return self._roles[user_id]
