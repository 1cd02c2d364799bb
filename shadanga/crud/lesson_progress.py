from sqlalchemy.orm import Session
from typing import Optional

from shadanga.crud.base import CRUDBase
from shadanga.models.lesson_progress import LessonProgress
from shadanga.schemas.lesson_progress import LessonProgress as LessonProgressSchema

class CRUDLessonProgress(CRUDBase[LessonProgress, LessonProgressSchema, LessonProgressSchema]):
    def get_by_user_and_lesson(self, db: Session, *, user_id: int, lesson_id: int) -> Optional[LessonProgress]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.lesson_id == lesson_id)
            .first()
        )

    def increment_pauses(self, db: Session, *, progress: LessonProgress) -> LessonProgress:
        progress.pauses_used = (progress.pauses_used or 0) + 1
        db.add(progress)
        db.commit()
        db.refresh(progress)
        return progress

lesson_progress = CRUDLessonProgress(LessonProgress)
