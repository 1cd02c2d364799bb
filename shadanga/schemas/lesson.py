from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Optional
from datetime import datetime

from shadanga.core.constants import AccessCodeTypeEnum

class LessonBase(BaseModel):
    title: str
    description: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: int = Field(default=0, ge=0)
    order_index: Optional[int] = Field(default=None, ge=0)
    max_pauses: Optional[int] = Field(default=None, ge=0)

class LessonCreate(LessonBase):
    course_id: int
    access_code_enabled: bool = True

class LessonUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    order_index: Optional[int] = Field(default=None, ge=0)
    max_pauses: Optional[int] = Field(default=None, ge=0)

class Lesson(BaseModel):
    """Learner-safe view of a lesson. The access code digits are never included."""
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    duration_seconds: int
    order_index: int
    max_pauses: int
    access_code_enabled: bool
    has_access_code: bool = False
    access_code_type: Optional[AccessCodeTypeEnum] = None
    access_code_expired: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    @model_validator(mode="before")
    @classmethod
    def derive_access_code_flags(cls, data: Any):
        if isinstance(data, dict):
            return data
        from shadanga.crud.access_code import AccessCodeStore
        return {
            "id": data.id,
            "course_id": data.course_id,
            "title": data.title,
            "description": data.description,
            "duration_seconds": data.duration_seconds or 0,
            "order_index": data.order_index or 0,
            "max_pauses": data.max_pauses,
            "access_code_enabled": bool(data.access_code_enabled),
            "has_access_code": bool(data.access_code),
            "access_code_type": data.access_code_type,
            "access_code_expired": bool(data.access_code) and AccessCodeStore.is_expired(data),
            "created_at": data.created_at,
        }
