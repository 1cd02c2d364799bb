from typing import List
import logging

from sqlalchemy.orm import Session

from shadanga.core.config import settings
from shadanga.core.exceptions import NotFoundError
from shadanga.crud.course import course as crud_course
from shadanga.crud.lesson import lesson as crud_lesson
from shadanga.models.course import Course
from shadanga.models.lesson import Lesson
from shadanga.schemas.course import CourseCreate
from shadanga.schemas.lesson import LessonCreate, LessonUpdate
from shadanga.schemas.user import UserContext
from shadanga.utils.permission import PermissionHelper

logger = logging.getLogger(__name__)

class LessonService:
    def create_course(self, db: Session, course_in: CourseCreate, current_user_context: UserContext) -> Course:
        PermissionHelper.require_admin(current_user_context)
        new_course = crud_course.create(db, obj_in=course_in.model_dump())
        logger.info(f"Course {new_course.id} created by user {current_user_context.user.id}")
        return new_course

    def get_course(self, db: Session, course_id: int) -> Course:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise NotFoundError("Course not found.")
        return course

    def get_courses(self, db: Session, skip: int = 0, limit: int = 100) -> List[Course]:
        return crud_course.get_active(db, skip=skip, limit=limit)

    def create_lesson(self, db: Session, lesson_in: LessonCreate, current_user_context: UserContext) -> Lesson:
        PermissionHelper.require_facilitator_or_admin(current_user_context)
        self.get_course(db, lesson_in.course_id)

        data = lesson_in.model_dump()
        if data.get("order_index") is None:
            data["order_index"] = len(crud_lesson.get_by_course(db, course_id=lesson_in.course_id))
        if data.get("max_pauses") is None:
            data["max_pauses"] = settings.DEFAULT_MAX_PAUSES

        new_lesson = crud_lesson.create(db, obj_in=data)
        logger.info(f"Lesson {new_lesson.id} created in course {lesson_in.course_id}")
        return new_lesson

    def get_lesson(self, db: Session, lesson_id: int) -> Lesson:
        lesson = crud_lesson.get(db, id=lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found.")
        return lesson

    def get_lessons_by_course(self, db: Session, course_id: int) -> List[Lesson]:
        self.get_course(db, course_id)
        return crud_lesson.get_by_course(db, course_id=course_id)

    def update_lesson(self, db: Session, lesson_id: int, lesson_in: LessonUpdate, current_user_context: UserContext) -> Lesson:
        PermissionHelper.require_facilitator_or_admin(current_user_context)
        lesson = self.get_lesson(db, lesson_id)
        return crud_lesson.update(db, db_obj=lesson, obj_in=lesson_in)

    def delete_lesson(self, db: Session, lesson_id: int, current_user_context: UserContext) -> dict:
        PermissionHelper.require_facilitator_or_admin(current_user_context)
        self.get_lesson(db, lesson_id)
        crud_lesson.delete(db, id=lesson_id)
        logger.info(f"Lesson {lesson_id} deleted by user {current_user_context.user.id}")
        return {"message": "Lesson deleted successfully"}

lesson_service = LessonService()
