from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from shadanga.core.constants import AccessCodeTypeEnum
from shadanga.models.lesson import Lesson
from shadanga.utils.clock import as_utc, utcnow


class AccessCodeStore:
    """Reads and writes the access-code columns of a lesson row."""

    def get_lesson(self, db: Session, lesson_id: int) -> Optional[Lesson]:
        return (
            db.query(Lesson)
            .filter(Lesson.id == lesson_id, Lesson.deleted_at == None)
            .first()
        )

    def save_code(
        self,
        db: Session,
        *,
        lesson: Lesson,
        code: str,
        code_type: AccessCodeTypeEnum,
        expires_at: Optional[datetime],
        generated_at: datetime,
    ) -> Lesson:
        # Last writer wins: no version check on concurrent generation.
        lesson.access_code = code
        lesson.access_code_type = code_type
        lesson.access_code_expires_at = expires_at
        lesson.access_code_generated_at = generated_at
        lesson.access_code_enabled = True
        db.add(lesson)
        db.commit()
        db.refresh(lesson)
        return lesson

    def set_enabled(self, db: Session, *, lesson: Lesson, enabled: bool) -> Lesson:
        lesson.access_code_enabled = enabled
        db.add(lesson)
        db.commit()
        db.refresh(lesson)
        return lesson

    def clear(self, db: Session, *, lesson: Lesson) -> bool:
        if not lesson.access_code:
            return False
        lesson.access_code = None
        lesson.access_code_type = None
        lesson.access_code_expires_at = None
        lesson.access_code_generated_at = None
        db.add(lesson)
        db.commit()
        db.refresh(lesson)
        return True

    @staticmethod
    def is_expired(lesson: Lesson, now: Optional[datetime] = None) -> bool:
        if lesson.access_code_type != AccessCodeTypeEnum.TEMPORARY:
            return False
        expires_at = as_utc(lesson.access_code_expires_at)
        if expires_at is None:
            return False
        return as_utc(now or utcnow()) > expires_at


access_code_store = AccessCodeStore()
