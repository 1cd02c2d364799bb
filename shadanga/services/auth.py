from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session
from shadanga.core.exceptions import AuthenticationError, ConflictError, ValidationError
from shadanga.core.security import create_access_token, decode_access_token, verify_password
from shadanga.crud.user import user as crud_user
from shadanga.crud.token_denylist import token_denylist as crud_token_denylist
from shadanga.models.user import User
from shadanga.schemas.token import LoginResponse, Token
from shadanga.schemas.token_denylist import TokenDenylistCreate
from shadanga.schemas.user import User as UserSchema, UserCreate

logger = logging.getLogger(__name__)

class AuthService:
    def register(self, db: Session, *, user_in: UserCreate) -> User:
        if crud_user.get_by_email(db, email=user_in.email):
            raise ConflictError("An account with this email already exists.")
        new_user = crud_user.create_with_password(db, obj_in=user_in)
        logger.info(f"Learner account created: user_id={new_user.id}")
        return new_user

    def login(self, db: Session, *, email: str, password: str) -> LoginResponse:
        user = crud_user.get_by_email(db, email=email)
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Incorrect email or password")

        if not user.is_active:
            raise AuthenticationError("User is inactive")

        access_token = create_access_token(
            data={"user_id": user.id, "role": user.role.value},
            email=user.email,
        )
        return LoginResponse(
            token=Token(access_token=access_token, token_type="bearer"),
            user=UserSchema.model_validate(user),
        )

    def logout(self, db: Session, *, token: str) -> None:
        token_data = decode_access_token(token)

        if not token_data.jti or not token_data.exp:
            raise ValidationError("Token missing JTI or expiration claim")

        crud_token_denylist.create(db, obj_in=TokenDenylistCreate(jti=token_data.jti, exp=datetime.fromtimestamp(token_data.exp, tz=timezone.utc)))
        logger.info(f"Token revoked for user_id={token_data.user_id}")

auth_service = AuthService()
