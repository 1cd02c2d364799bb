from pydantic import BaseModel, ConfigDict, computed_field
from typing import Optional
from datetime import datetime

class LessonProgress(BaseModel):
    lesson_id: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_completed: bool = False
    pauses_used: int = 0
    max_pauses: int = 0
    time_spent_seconds: int = 0

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def pauses_remaining(self) -> int:
        return max(self.max_pauses - self.pauses_used, 0)

class LessonComplete(BaseModel):
    time_spent_seconds: Optional[int] = None
