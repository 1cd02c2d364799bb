from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shadanga.schemas.course import Course, CourseCreate
from shadanga.schemas.lesson import Lesson
from shadanga.schemas.response import APIResponse
from shadanga.schemas.user import UserContext
from shadanga.services.lesson import lesson_service
from shadanga.utils import deps

router = APIRouter()

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=APIResponse[Course])
def create_course(
    course_in: CourseCreate,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    new_course = lesson_service.create_course(db, course_in=course_in, current_user_context=context)
    return APIResponse(message="Course created successfully", data=Course.model_validate(new_course))

@router.get("/", response_model=APIResponse[List[Course]])
def get_courses(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    courses = lesson_service.get_courses(db, skip=skip, limit=limit)
    return APIResponse(message="Courses retrieved successfully", data=[Course.model_validate(c) for c in courses])

@router.get("/{course_id}", response_model=APIResponse[Course])
def get_course(
    course_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    course = lesson_service.get_course(db, course_id=course_id)
    return APIResponse(message="Course retrieved successfully", data=Course.model_validate(course))

@router.get("/{course_id}/lessons/", response_model=APIResponse[List[Lesson]])
def get_lessons_by_course(
    course_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    lessons = lesson_service.get_lessons_by_course(db, course_id=course_id)
    return APIResponse(message="Lessons retrieved successfully", data=[Lesson.model_validate(l) for l in lessons])
