from typing import List, Optional
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto, UserRole
from .....utils import utcnow

class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            name=user.name,
            role=UserRole(user.role),
            fcm_token=user.fcm_token,
            created_at=user.created_at,
            updated_at=user.updated_at,
            specialization=user.specialization,
        )

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.id == user_id)).first()
        return self._to_dto(user) if user else None

    def create(self, user_id: str, name: str, role: UserRole, specialization: Optional[str] = None) -> UserDto:
        user = User(id=user_id, name=name, role=role.value, specialization=specialization)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._to_dto(user)

    def update_profile(self, user_id: str, name: str, specialization: Optional[str] = None) -> None:
        user = self.session.exec(select(User).where(User.id == user_id)).first()
        if not user:
            return
        user.name = name
        user.specialization = specialization
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()

    def set_fcm_token(self, user_id: str, token: Optional[str]) -> None:
        user = self.session.exec(select(User).where(User.id == user_id)).first()
        if not user:
            return
        user.fcm_token = token
        user.fcm_token_updated_at = utcnow()
        self.session.add(user)
        self.session.commit()

    def list_by_role(
        self,
        role: UserRole,
        name_contains: Optional[str] = None,
        specialization: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[UserDto]:
        query = select(User).where(User.role == role.value)
        if name_contains:
            query = query.where(User.name.ilike(f"%{name_contains}%"))
        if specialization:
            query = query.where(User.specialization.ilike(f"%{specialization}%"))
        query = query.order_by(User.name, User.id).offset(offset).limit(limit)
        return [self._to_dto(u) for u in self.session.exec(query).all()]
