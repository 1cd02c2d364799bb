from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from shadanga.core.constants import EncryptionAlgorithmEnum

class DeviceRegister(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=255)
    device_name: Optional[str] = Field(default=None, max_length=255)
    platform: Optional[str] = Field(default=None, max_length=50)

class Device(BaseModel):
    id: int
    device_id: str
    device_name: Optional[str] = None
    platform: Optional[str] = None
    registered_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DownloadAuthorizeRequest(BaseModel):
    device_id: str = Field(..., min_length=1)

class DownloadLesson(BaseModel):
    id: int
    title: str
    course_id: int
    course_title: str
    duration_seconds: int
    audio_url: str

class DownloadAuthorization(BaseModel):
    lesson: DownloadLesson
    algorithm: EncryptionAlgorithmEnum = EncryptionAlgorithmEnum.AES_256_CBC

    model_config = ConfigDict(use_enum_values=True)

class DownloadKeyRegister(BaseModel):
    """Registers the hash of a client-held key. The key itself never reaches the server."""
    device_id: str = Field(..., min_length=1)
    encryption_key_hash: str = Field(..., min_length=64, max_length=64, pattern=r"^[0-9a-f]{64}$")

class DownloadConfirm(BaseModel):
    device_id: str = Field(..., min_length=1)
    file_size_bytes: int = Field(default=0, ge=0)

class DownloadKeyCheck(BaseModel):
    valid: bool

class OfflineDownload(BaseModel):
    id: int
    lesson_id: int
    lesson_title: str
    course_id: int
    course_title: str
    duration_seconds: int
    device_id: str
    file_size_bytes: int
    downloaded_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None

class RevokeResult(BaseModel):
    revoked_count: int

class TopLesson(BaseModel):
    lesson_id: int
    title: str
    download_count: int

class DownloadStats(BaseModel):
    unique_users: int
    unique_lessons: int
    total_downloads: int
    total_size_bytes: int
    top_lessons: List[TopLesson] = []
