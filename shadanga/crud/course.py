from sqlalchemy.orm import Session
from typing import List

from shadanga.crud.base import CRUDBase
from shadanga.models.course import Course
from shadanga.schemas.course import CourseCreate, CourseUpdate

class CRUDCourse(CRUDBase[Course, CourseCreate, CourseUpdate]):
    def get_active(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Course]:
        return (
            db.query(self.model)
            .filter(self.model.deleted_at == None, self.model.is_active == True)
            .order_by(self.model.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

course = CRUDCourse(Course)
