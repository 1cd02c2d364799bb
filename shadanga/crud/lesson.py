from sqlalchemy.orm import Session, selectinload
from typing import Any, List, Optional

from shadanga.crud.base import CRUDBase
from shadanga.models.lesson import Lesson
from shadanga.schemas.lesson import LessonCreate, LessonUpdate

class CRUDLesson(CRUDBase[Lesson, LessonCreate, LessonUpdate]):
    def get(self, db: Session, id: Any) -> Optional[Lesson]:
        return (
            db.query(self.model)
            .filter(self.model.id == id, self.model.deleted_at == None)
            .options(selectinload(self.model.course))
            .first()
        )

    def get_by_course(self, db: Session, *, course_id: int) -> List[Lesson]:
        return (
            db.query(self.model)
            .filter(self.model.course_id == course_id, self.model.deleted_at == None)
            .order_by(self.model.order_index)
            .all()
        )

lesson = CRUDLesson(Lesson)
