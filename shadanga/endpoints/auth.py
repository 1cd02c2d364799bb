from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from shadanga.schemas.response import APIResponse
from shadanga.schemas.token import LoginRequest, LoginResponse
from shadanga.schemas.user import User, UserCreate
from shadanga.services.auth import auth_service
from shadanga.utils import deps

router = APIRouter()

@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=APIResponse[User])
def register(
    user_in: UserCreate,
    db: Session = Depends(deps.get_transactional_db)
):
    """Create a learner account."""
    new_user = auth_service.register(db, user_in=user_in)
    return APIResponse(message="Account created successfully", data=User.model_validate(new_user))

@router.post("/login", response_model=APIResponse[LoginResponse])
def login_for_access_token(
    request: LoginRequest,
    db: Session = Depends(deps.get_db)
):
    login_data = auth_service.login(db=db, email=request.email, password=request.password)
    return APIResponse(message="Login successful", data=login_data)

@router.post("/logout", status_code=status.HTTP_200_OK, response_model=APIResponse[None])
def logout(
    db: Session = Depends(deps.get_db),
    credentials: HTTPAuthorizationCredentials = Depends(deps.http_bearer)
):
    """Invalidate the current access token by adding it to the denylist."""
    auth_service.logout(db=db, token=credentials.credentials)
    return APIResponse(message="Logout successful")
