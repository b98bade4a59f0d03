from typing import Optional, Protocol

from .user_repo import UserRole


class IdentityProvider(Protocol):
    def current_actor_id(self) -> str:
        ...

    def role(self, user_id: str) -> Optional[UserRole]:
        ...
