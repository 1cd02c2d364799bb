from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from shadanga.core.constants import EnrollmentStatusEnum

class EnrollmentCreate(BaseModel):
    user_id: int
    course_id: int

class Enrollment(BaseModel):
    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatusEnum
    enrolled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
