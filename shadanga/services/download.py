from typing import List, Optional
import logging
import secrets

from sqlalchemy.orm import Session

from shadanga.core.constants import DownloadStatusEnum
from shadanga.core.exceptions import NotFoundError, PermissionDeniedError
from shadanga.crud.course_enrollment import course_enrollment as crud_enrollment
from shadanga.crud.lesson import lesson as crud_lesson
from shadanga.crud.offline_download import offline_download as crud_offline_download
from shadanga.crud.user import user as crud_user
from shadanga.crud.user_device import user_device as crud_user_device
from shadanga.models.lesson import Lesson
from shadanga.models.user_device import UserDevice
from shadanga.schemas.download import (
    DeviceRegister,
    DownloadAuthorization,
    DownloadConfirm,
    DownloadKeyCheck,
    DownloadKeyRegister,
    DownloadLesson,
    DownloadStats,
    OfflineDownload,
    RevokeResult,
)
from shadanga.schemas.user import UserContext
from shadanga.services.audio_storage import audio_storage_service, AudioStorageService
from shadanga.utils.clock import utcnow
from shadanga.utils.permission import PermissionHelper

logger = logging.getLogger(__name__)


class DownloadService:
    def __init__(self, storage: AudioStorageService = audio_storage_service):
        self.storage = storage

    def register_device(self, db: Session, device_in: DeviceRegister, current_user_context: UserContext) -> UserDevice:
        device = crud_user_device.upsert(db, user_id=current_user_context.user.id, obj_in=device_in)
        logger.info(f"Device {device.device_id} registered for user {current_user_context.user.id}")
        return device

    def get_my_devices(self, db: Session, current_user_context: UserContext) -> List[UserDevice]:
        return crud_user_device.get_active_by_user(db, user_id=current_user_context.user.id)

    def _require_registered_device(self, db: Session, user_id: int, device_id: str) -> UserDevice:
        device = crud_user_device.get_active(db, user_id=user_id, device_id=device_id)
        if not device:
            raise PermissionDeniedError("Device not registered. Please register device first.")
        return device

    def _get_lesson_with_access(self, db: Session, user_id: int, lesson_id: int) -> Lesson:
        lesson = crud_lesson.get(db, id=lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found.")
        if not crud_enrollment.has_active_enrollment(db, user_id=user_id, course_id=lesson.course_id):
            raise PermissionDeniedError("No access to this lesson. Please enroll in the course first.")
        return lesson

    def authorize(self, db: Session, lesson_id: int, device_id: str, current_user_context: UserContext) -> DownloadAuthorization:
        user_id = current_user_context.user.id
        device = self._require_registered_device(db, user_id, device_id)
        lesson = self._get_lesson_with_access(db, user_id, lesson_id)

        if not lesson.audio_url:
            raise NotFoundError("No audio available for this lesson.")

        crud_user_device.touch(db, device=device)
        logger.info(f"Download authorized: user={user_id} lesson={lesson_id} device={device_id}")

        return DownloadAuthorization(
            lesson=DownloadLesson(
                id=lesson.id,
                title=lesson.title,
                course_id=lesson.course_id,
                course_title=lesson.course.title,
                duration_seconds=lesson.duration_seconds or 0,
                audio_url=self.storage.sign_audio_url(lesson.audio_url),
            )
        )

    def register_key(self, db: Session, lesson_id: int, key_in: DownloadKeyRegister, current_user_context: UserContext) -> None:
        user_id = current_user_context.user.id
        self._require_registered_device(db, user_id, key_in.device_id)
        self._get_lesson_with_access(db, user_id, lesson_id)
        crud_offline_download.register_key_hash(
            db,
            user_id=user_id,
            lesson_id=lesson_id,
            device_id=key_in.device_id,
            key_hash=key_in.encryption_key_hash,
        )

    def confirm(self, db: Session, lesson_id: int, confirm_in: DownloadConfirm, current_user_context: UserContext) -> None:
        record = crud_offline_download.get_active_for_triple(
            db, user_id=current_user_context.user.id, lesson_id=lesson_id, device_id=confirm_in.device_id
        )
        if not record:
            raise NotFoundError("No active download found for this lesson on this device.")
        crud_offline_download.update(
            db,
            db_obj=record,
            obj_in={"file_size_bytes": confirm_in.file_size_bytes, "last_accessed_at": utcnow()},
        )

    def verify_key(self, db: Session, lesson_id: int, key_in: DownloadKeyRegister, current_user_context: UserContext) -> DownloadKeyCheck:
        """Online audit check before offline playback: is this download still registered and unrevoked?"""
        record = crud_offline_download.get_active_for_triple(
            db, user_id=current_user_context.user.id, lesson_id=lesson_id, device_id=key_in.device_id
        )
        if not record:
            return DownloadKeyCheck(valid=False)
        valid = secrets.compare_digest(record.encryption_key_hash, key_in.encryption_key_hash)
        if valid:
            crud_offline_download.update(db, db_obj=record, obj_in={"last_accessed_at": utcnow()})
        return DownloadKeyCheck(valid=valid)

    def get_my_downloads(self, db: Session, current_user_context: UserContext, device_id: Optional[str] = None) -> List[OfflineDownload]:
        records = crud_offline_download.get_active_by_user(db, user_id=current_user_context.user.id, device_id=device_id)
        return [
            OfflineDownload(
                id=r.id,
                lesson_id=r.lesson_id,
                lesson_title=r.lesson.title,
                course_id=r.lesson.course_id,
                course_title=r.lesson.course.title,
                duration_seconds=r.lesson.duration_seconds or 0,
                device_id=r.device_id,
                file_size_bytes=int(r.file_size_bytes or 0),
                downloaded_at=r.downloaded_at,
                last_accessed_at=r.last_accessed_at,
            )
            for r in records
        ]

    def delete(self, db: Session, lesson_id: int, device_id: str, current_user_context: UserContext) -> None:
        record = crud_offline_download.get_for_triple(
            db, user_id=current_user_context.user.id, lesson_id=lesson_id, device_id=device_id
        )
        if not record:
            return
        crud_offline_download.update(db, db_obj=record, obj_in={"status": DownloadStatusEnum.DELETED})
        logger.info(f"Download deleted: user={current_user_context.user.id} lesson={lesson_id} device={device_id}")

    def revoke_user_downloads(self, db: Session, user_id: int, current_user_context: UserContext) -> RevokeResult:
        PermissionHelper.require_admin(current_user_context)
        if not crud_user.get(db, id=user_id):
            raise NotFoundError("User not found.")
        count = crud_offline_download.set_status_for_user(db, user_id=user_id, status=DownloadStatusEnum.REVOKED)
        logger.warning(f"Admin {current_user_context.user.id} revoked {count} download(s) of user {user_id}")
        return RevokeResult(revoked_count=count)

    def get_stats(self, db: Session, current_user_context: UserContext) -> DownloadStats:
        PermissionHelper.require_admin(current_user_context)
        return DownloadStats(**crud_offline_download.get_stats(db))


download_service = DownloadService()
