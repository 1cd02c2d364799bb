from typing import List
import logging

from sqlalchemy.orm import Session

from shadanga.core.constants import EnrollmentStatusEnum
from shadanga.core.exceptions import ConflictError, NotFoundError, ValidationError
from shadanga.crud.course import course as crud_course
from shadanga.crud.course_enrollment import course_enrollment as crud_enrollment
from shadanga.crud.user import user as crud_user
from shadanga.models.course_enrollment import CourseEnrollment
from shadanga.schemas.enrollment import EnrollmentCreate
from shadanga.schemas.user import UserContext
from shadanga.utils.permission import PermissionHelper

logger = logging.getLogger(__name__)

class EnrollmentService:
    def enroll(self, db: Session, enrollment_in: EnrollmentCreate, current_user_context: UserContext) -> CourseEnrollment:
        PermissionHelper.require_facilitator_or_admin(current_user_context)

        if not crud_course.get(db, id=enrollment_in.course_id):
            raise NotFoundError("Course not found.")
        learner = crud_user.get(db, id=enrollment_in.user_id)
        if not learner:
            raise NotFoundError("User not found.")
        if not learner.is_active:
            raise ValidationError("Cannot enroll an inactive user.")

        existing = crud_enrollment.get_by_user_and_course(db, user_id=learner.id, course_id=enrollment_in.course_id)
        if existing and existing.status == EnrollmentStatusEnum.ACTIVE:
            raise ConflictError("User is already enrolled in this course.")
        if existing:
            return crud_enrollment.update(db, db_obj=existing, obj_in={"status": EnrollmentStatusEnum.ACTIVE})

        enrollment = crud_enrollment.create(
            db,
            obj_in={"user_id": learner.id, "course_id": enrollment_in.course_id, "status": EnrollmentStatusEnum.ACTIVE},
        )
        logger.info(f"User {learner.id} enrolled in course {enrollment_in.course_id}")
        return enrollment

    def get_my_enrollments(self, db: Session, current_user_context: UserContext) -> List[CourseEnrollment]:
        return crud_enrollment.get_by_user(db, user_id=current_user_context.user.id)

enrollment_service = EnrollmentService()
