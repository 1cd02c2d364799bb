from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shadanga.schemas.enrollment import Enrollment, EnrollmentCreate
from shadanga.schemas.response import APIResponse
from shadanga.schemas.user import UserContext
from shadanga.services.enrollment import enrollment_service
from shadanga.utils import deps

router = APIRouter()

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=APIResponse[Enrollment])
def enroll_user(
    enrollment_in: EnrollmentCreate,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = enrollment_service.enroll(db, enrollment_in=enrollment_in, current_user_context=context)
    return APIResponse(message="User enrolled successfully", data=Enrollment.model_validate(enrollment))

@router.get("/my", response_model=APIResponse[List[Enrollment]])
def get_my_enrollments(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollments = enrollment_service.get_my_enrollments(db, current_user_context=context)
    return APIResponse(message="Enrollments retrieved successfully", data=[Enrollment.model_validate(e) for e in enrollments])
