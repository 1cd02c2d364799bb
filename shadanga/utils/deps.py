from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from shadanga.core.database import SessionLocal
from shadanga.core.exceptions import AuthenticationError, PermissionDeniedError
from shadanga.core.security import decode_access_token
from shadanga.crud.user import user as user_crud
from shadanga.crud.token_denylist import token_denylist as token_denylist_crud
from shadanga.schemas.user import User, UserContext

http_bearer = HTTPBearer()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    """Commits once the endpoint returns; any exception rolls the whole request back."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_current_user_with_context(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer)
) -> UserContext:
    token_data = decode_access_token(credentials.credentials)

    if token_data.jti and token_denylist_crud.get_by_jti(db, jti=token_data.jti):
        raise AuthenticationError("Token has been revoked")

    user = user_crud.get(db, id=token_data.user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise PermissionDeniedError("User account is inactive")

    return UserContext(user=User.model_validate(user), role=user.role)
