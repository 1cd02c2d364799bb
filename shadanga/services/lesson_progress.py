from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from shadanga.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from shadanga.crud.course_enrollment import course_enrollment as crud_enrollment
from shadanga.crud.lesson import lesson as crud_lesson
from shadanga.crud.lesson_progress import lesson_progress as crud_lesson_progress
from shadanga.models.lesson import Lesson
from shadanga.models.lesson_progress import LessonProgress
from shadanga.schemas.lesson_progress import LessonProgress as LessonProgressSchema
from shadanga.schemas.user import UserContext
from shadanga.utils.permission import PermissionHelper

logger = logging.getLogger(__name__)


class LessonProgressService:
    """Server side of playback: start, pause budget, completion."""

    def _get_lesson_for_learner(self, db: Session, lesson_id: int, current_user_context: UserContext) -> Lesson:
        PermissionHelper.require_learner(current_user_context)
        lesson = crud_lesson.get(db, id=lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found.")
        if not crud_enrollment.has_active_enrollment(db, user_id=current_user_context.user.id, course_id=lesson.course_id):
            raise PermissionDeniedError("You are not enrolled in this course.")
        return lesson

    def _get_progress_or_raise(self, db: Session, user_id: int, lesson_id: int) -> LessonProgress:
        progress = crud_lesson_progress.get_by_user_and_lesson(db, user_id=user_id, lesson_id=lesson_id)
        if not progress:
            raise NotFoundError("Lesson has not been started.")
        return progress

    def _to_schema(self, progress: LessonProgress, lesson: Lesson) -> LessonProgressSchema:
        return LessonProgressSchema(
            lesson_id=lesson.id,
            started_at=progress.started_at,
            completed_at=progress.completed_at,
            is_completed=bool(progress.is_completed),
            pauses_used=progress.pauses_used or 0,
            max_pauses=lesson.max_pauses,
            time_spent_seconds=progress.time_spent_seconds or 0,
        )

    def start_lesson(self, db: Session, lesson_id: int, current_user_context: UserContext) -> LessonProgressSchema:
        lesson = self._get_lesson_for_learner(db, lesson_id, current_user_context)
        user_id = current_user_context.user.id
        now = datetime.utcnow()

        progress = crud_lesson_progress.get_by_user_and_lesson(db, user_id=user_id, lesson_id=lesson_id)
        if not progress:
            progress = crud_lesson_progress.create(
                db,
                obj_in={
                    "user_id": user_id,
                    "lesson_id": lesson_id,
                    "started_at": now,
                    "last_accessed_at": now,
                    "pauses_used": 0,
                    "is_completed": False,
                },
            )
        else:
            progress = crud_lesson_progress.update(db, db_obj=progress, obj_in={"last_accessed_at": now})

        logger.info(f"User {user_id} started lesson {lesson_id}")
        return self._to_schema(progress, lesson)

    def record_pause(self, db: Session, lesson_id: int, current_user_context: UserContext) -> LessonProgressSchema:
        lesson = self._get_lesson_for_learner(db, lesson_id, current_user_context)
        progress = self._get_progress_or_raise(db, current_user_context.user.id, lesson_id)

        if progress.is_completed:
            raise ConflictError("Lesson is already completed.")
        if (progress.pauses_used or 0) >= lesson.max_pauses:
            raise ConflictError("No pauses remaining for this lesson. Contact admin for additional pauses.")

        progress = crud_lesson_progress.increment_pauses(db, progress=progress)
        return self._to_schema(progress, lesson)

    def complete_lesson(
        self,
        db: Session,
        lesson_id: int,
        current_user_context: UserContext,
        time_spent_seconds: Optional[int] = None,
    ) -> LessonProgressSchema:
        lesson = self._get_lesson_for_learner(db, lesson_id, current_user_context)
        progress = self._get_progress_or_raise(db, current_user_context.user.id, lesson_id)

        if not progress.is_completed:
            now = datetime.utcnow()
            if time_spent_seconds is None and progress.started_at:
                time_spent_seconds = int((now - progress.started_at).total_seconds())
            progress = crud_lesson_progress.update(
                db,
                db_obj=progress,
                obj_in={
                    "is_completed": True,
                    "completed_at": now,
                    "last_accessed_at": now,
                    "time_spent_seconds": max(time_spent_seconds or 0, 0),
                },
            )
            logger.info(f"User {current_user_context.user.id} completed lesson {lesson_id}")
        return self._to_schema(progress, lesson)


lesson_progress_service = LessonProgressService()
