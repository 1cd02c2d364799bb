from fastapi import APIRouter, Depends

from shadanga.schemas.response import APIResponse
from shadanga.schemas.user import User, UserContext
from shadanga.utils import deps

router = APIRouter()

@router.get("/me", response_model=APIResponse[User])
def read_current_user(
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    return APIResponse(message="User retrieved successfully", data=context.user)
