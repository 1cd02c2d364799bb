from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shadanga.core.database import Base
from shadanga.core.constants import AccessCodeTypeEnum

class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    audio_url = Column(String, nullable=True)
    duration_seconds = Column(Integer, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)
    max_pauses = Column(Integer, nullable=False, default=3)

    access_code_enabled = Column(Boolean, nullable=False, default=True)
    access_code = Column(String(10), nullable=True, index=True)
    access_code_type = Column(Enum(AccessCodeTypeEnum), nullable=True)
    access_code_expires_at = Column(DateTime(timezone=True), nullable=True)
    access_code_generated_at = Column(DateTime(timezone=True), nullable=True)

    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    course = relationship("Course", back_populates="lessons")
    progress_records = relationship("LessonProgress", back_populates="lesson")

    @property
    def has_access_code(self) -> bool:
        return bool(self.access_code)
