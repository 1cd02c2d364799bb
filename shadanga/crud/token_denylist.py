from sqlalchemy.orm import Session
from shadanga.crud.base import CRUDBase
from shadanga.models.token_denylist import TokenDenylist
from shadanga.schemas.token_denylist import TokenDenylistCreate
from typing import Optional

class CRUDTokenDenylist(CRUDBase[TokenDenylist, TokenDenylistCreate, TokenDenylistCreate]):
    def get_by_jti(self, db: Session, *, jti: str) -> Optional[TokenDenylist]:
        return db.query(self.model).filter(self.model.jti == jti).first()

token_denylist = CRUDTokenDenylist(TokenDenylist)
