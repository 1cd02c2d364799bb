from sqlalchemy.orm import Session
from typing import List, Optional

from shadanga.crud.base import CRUDBase
from shadanga.models.course_enrollment import CourseEnrollment
from shadanga.schemas.enrollment import EnrollmentCreate
from shadanga.core.constants import EnrollmentStatusEnum

class CRUDCourseEnrollment(CRUDBase[CourseEnrollment, EnrollmentCreate, EnrollmentCreate]):
    def get_by_user_and_course(self, db: Session, *, user_id: int, course_id: int) -> Optional[CourseEnrollment]:
        return (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.course_id == course_id)
            .first()
        )

    def has_active_enrollment(self, db: Session, *, user_id: int, course_id: int) -> bool:
        return (
            db.query(self.model)
            .filter(
                self.model.user_id == user_id,
                self.model.course_id == course_id,
                self.model.status == EnrollmentStatusEnum.ACTIVE,
            )
            .first()
            is not None
        )

    def get_by_user(self, db: Session, *, user_id: int) -> List[CourseEnrollment]:
        return db.query(self.model).filter(self.model.user_id == user_id).order_by(self.model.enrolled_at.desc()).all()

course_enrollment = CRUDCourseEnrollment(CourseEnrollment)
