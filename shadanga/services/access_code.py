from datetime import datetime, timedelta
from typing import Optional, Union
import logging
import secrets

from sqlalchemy.orm import Session

from shadanga.core.constants import ACCESS_CODE_LENGTH, AccessCodeTypeEnum
from shadanga.core.exceptions import (
    AccessCodeDisabledError,
    AccessCodeRejected,
    ExpiredCodeError,
    IncorrectCodeError,
    NoCodeConfiguredError,
    NotFoundError,
    ValidationError,
)
from shadanga.crud.access_code import access_code_store, AccessCodeStore
from shadanga.models.lesson import Lesson
from shadanga.schemas.access_code import (
    AccessCode,
    AccessCodeAccepted,
    AccessCodeDetail,
    AccessCodeInfo,
    AccessCodeRejection,
    AccessCodeToggleResult,
    AccessCodeVerifyResult,
)
from shadanga.utils.clock import utcnow

logger = logging.getLogger(__name__)


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def is_well_formed_code(value: object) -> bool:
    return (
        isinstance(value, str)
        and len(value) == ACCESS_CODE_LENGTH
        and value.isascii()
        and value.isdigit()
    )


class AccessCodeService:
    def __init__(self, store: AccessCodeStore = access_code_store):
        self.store = store

    def _get_lesson_or_raise(self, db: Session, lesson_id: int) -> Lesson:
        lesson = self.store.get_lesson(db, lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found.")
        return lesson

    def generate(
        self,
        db: Session,
        lesson_id: int,
        code_type: Union[AccessCodeTypeEnum, str],
        expires_in_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AccessCode:
        try:
            code_type = AccessCodeTypeEnum(code_type)
        except ValueError:
            raise ValidationError('Invalid code type. Must be "permanent" or "temporary".')

        if code_type == AccessCodeTypeEnum.TEMPORARY:
            if (
                isinstance(expires_in_minutes, bool)
                or not isinstance(expires_in_minutes, int)
                or expires_in_minutes < 1
            ):
                raise ValidationError("Expiration time required for temporary access code.")

        lesson = self._get_lesson_or_raise(db, lesson_id)

        generated_at = now or utcnow()
        expires_at = (
            generated_at + timedelta(minutes=expires_in_minutes)
            if code_type == AccessCodeTypeEnum.TEMPORARY
            else None
        )
        lesson = self.store.save_code(
            db,
            lesson=lesson,
            code=generate_code(),
            code_type=code_type,
            expires_at=expires_at,
            generated_at=generated_at,
        )
        logger.info(f"Access code generated for lesson {lesson.id} (type={code_type.value})")

        return AccessCode(
            lesson_id=lesson.id,
            code=lesson.access_code,
            code_type=code_type,
            expires_at=expires_at,
            generated_at=generated_at,
            is_enabled=lesson.access_code_enabled,
        )

    def toggle(self, db: Session, lesson_id: int, enabled: bool) -> AccessCodeToggleResult:
        lesson = self._get_lesson_or_raise(db, lesson_id)
        lesson = self.store.set_enabled(db, lesson=lesson, enabled=enabled)
        logger.info(f"Access code requirement {'enabled' if enabled else 'disabled'} for lesson {lesson.id}")
        return AccessCodeToggleResult(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            access_code_enabled=lesson.access_code_enabled,
            has_access_code=lesson.has_access_code,
        )

    def clear(self, db: Session, lesson_id: int) -> None:
        lesson = self._get_lesson_or_raise(db, lesson_id)
        if not self.store.clear(db, lesson=lesson):
            raise NotFoundError("No access code set for this lesson.")
        logger.info(f"Access code cleared for lesson {lesson_id}")

    def get_info(self, db: Session, lesson_id: int, reveal_code: bool, now: Optional[datetime] = None) -> AccessCodeInfo:
        lesson = self._get_lesson_or_raise(db, lesson_id)
        detail = None
        if lesson.access_code:
            detail = AccessCodeDetail(
                code=lesson.access_code if reveal_code else None,
                code_type=lesson.access_code_type,
                expires_at=lesson.access_code_expires_at,
                generated_at=lesson.access_code_generated_at,
                is_expired=self.store.is_expired(lesson, now),
            )
        return AccessCodeInfo(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            access_code_enabled=lesson.access_code_enabled,
            has_access_code=lesson.has_access_code,
            access_code=detail,
        )

    def check(self, lesson: Lesson, submitted_code: str, now: Optional[datetime] = None) -> None:
        """Raise the matching AccessCodeRejected subclass unless the code admits the learner."""
        if not lesson.access_code_enabled:
            raise AccessCodeDisabledError()
        if not lesson.access_code:
            raise NoCodeConfiguredError()
        if self.store.is_expired(lesson, now):
            raise ExpiredCodeError()
        if not secrets.compare_digest(lesson.access_code, submitted_code):
            raise IncorrectCodeError()

    def verify(
        self,
        db: Session,
        lesson_id: int,
        submitted_code: str,
        now: Optional[datetime] = None,
    ) -> AccessCodeVerifyResult:
        if not is_well_formed_code(submitted_code):
            raise ValidationError(f"Access code must be exactly {ACCESS_CODE_LENGTH} digits.")

        lesson = self._get_lesson_or_raise(db, lesson_id)
        try:
            self.check(lesson, submitted_code, now)
        except AccessCodeRejected as exc:
            logger.info(f"Access code rejected for lesson {lesson_id}: {exc.kind.value}")
            return AccessCodeRejection(error=exc.kind, message=exc.detail)
        return AccessCodeAccepted()


access_code_service = AccessCodeService()
