from sqlalchemy.orm import Session
from typing import Optional

from shadanga.crud.base import CRUDBase
from shadanga.models.user import User
from shadanga.schemas.user import UserCreate
from shadanga.core.security import get_password_hash
from shadanga.core.constants import RoleEnum

class CRUDUser(CRUDBase[User, UserCreate, UserCreate]):
    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(self.model).filter(self.model.email == email.lower()).first()

    def create_with_password(self, db: Session, *, obj_in: UserCreate, role: RoleEnum = RoleEnum.LEARNER) -> User:
        return self.create(
            db,
            obj_in={
                "full_name": obj_in.full_name.strip(),
                "email": obj_in.email.lower(),
                "hashed_password": get_password_hash(obj_in.password),
                "role": role,
                "is_active": True,
            },
        )

user = CRUDUser(User)
