from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from pydantic import BaseModel
from sqlalchemy.orm import Query, Session
from shadanga.core.database import Base
from shadanga.utils.clock import utcnow

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Row access shared by every table. Courses and lessons are soft deleted."""

    def __init__(self, model: Type[ModelType]):
        self.model = model
        self.soft_delete = hasattr(model, "deleted_at")

    def _live(self, db: Session) -> Query:
        query = db.query(self.model)
        if self.soft_delete:
            query = query.filter(self.model.deleted_at == None)
        return query

    def _save(self, db: Session, db_obj: ModelType, commit: bool) -> ModelType:
        db.add(db_obj)
        if commit:
            db.commit()
        else:
            db.flush()
        db.refresh(db_obj)
        return db_obj

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return self._live(db).filter(self.model.id == id).first()

    def get_multi(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[ModelType]:
        return self._live(db).order_by(self.model.id).offset(skip).limit(limit).all()

    def create(self, db: Session, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True) -> ModelType:
        values = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        return self._save(db, self.model(**values), commit)

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True,
    ) -> ModelType:
        values = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for field, value in values.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        return self._save(db, db_obj, commit)

    def delete(self, db: Session, *, id: int) -> Optional[ModelType]:
        db_obj = self.get(db, id)
        if db_obj is None:
            return None
        if not self.soft_delete:
            db.delete(db_obj)
            db.commit()
            return db_obj
        db_obj.deleted_at = utcnow()
        return self._save(db, db_obj, commit=True)
