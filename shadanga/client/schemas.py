from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SessionUser(BaseModel):
    id: int
    email: str
    full_name: str
    role: str

    model_config = ConfigDict(extra="ignore")


class LessonInfo(BaseModel):
    id: int
    course_id: int
    title: str
    duration_seconds: int = 0
    max_pauses: int = 0
    access_code_enabled: bool = True
    has_access_code: bool = False
    access_code_expired: bool = False

    model_config = ConfigDict(extra="ignore")


class PlaybackProgress(BaseModel):
    lesson_id: int
    is_completed: bool = False
    pauses_used: int = 0
    max_pauses: int = 0
    pauses_remaining: int = 0
    time_spent_seconds: int = 0

    model_config = ConfigDict(extra="ignore")


class DownloadGrant(BaseModel):
    lesson_id: int
    title: str
    course_id: int
    course_title: str
    duration_seconds: int
    audio_url: str
    algorithm: str


class DownloadStatus(str, Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    ENCRYPTING = "encrypting"
    SAVING = "saving"
    COMPLETED = "completed"
    ERROR = "error"


class DownloadProgress(BaseModel):
    lesson_id: int
    status: DownloadStatus
    percent: int
    loaded: int = 0
    total: int = 0
    error: Optional[str] = None


class DownloadedLesson(BaseModel):
    lesson_id: int
    lesson_title: str
    course_id: int
    course_title: str
    duration_seconds: int
    downloaded_at: datetime
    file_size_bytes: int
