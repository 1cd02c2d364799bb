from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from typing import Any, Dict, List, Optional

from shadanga.crud.base import CRUDBase
from shadanga.models.lesson import Lesson
from shadanga.models.offline_download import OfflineDownload
from shadanga.schemas.download import DownloadKeyRegister
from shadanga.core.constants import DownloadStatusEnum
from shadanga.utils.clock import utcnow

class CRUDOfflineDownload(CRUDBase[OfflineDownload, DownloadKeyRegister, DownloadKeyRegister]):
    def get_for_triple(self, db: Session, *, user_id: int, lesson_id: int, device_id: str) -> Optional[OfflineDownload]:
        return (
            db.query(self.model)
            .filter(
                self.model.user_id == user_id,
                self.model.lesson_id == lesson_id,
                self.model.device_id == device_id,
            )
            .first()
        )

    def get_active_for_triple(self, db: Session, *, user_id: int, lesson_id: int, device_id: str) -> Optional[OfflineDownload]:
        record = self.get_for_triple(db, user_id=user_id, lesson_id=lesson_id, device_id=device_id)
        if record is None or record.status != DownloadStatusEnum.ACTIVE:
            return None
        return record

    def register_key_hash(self, db: Session, *, user_id: int, lesson_id: int, device_id: str, key_hash: str) -> OfflineDownload:
        record = self.get_for_triple(db, user_id=user_id, lesson_id=lesson_id, device_id=device_id)
        now = utcnow()
        if record is None:
            return self.create(
                db,
                obj_in={
                    "user_id": user_id,
                    "lesson_id": lesson_id,
                    "device_id": device_id,
                    "encryption_key_hash": key_hash,
                    "status": DownloadStatusEnum.ACTIVE,
                    "downloaded_at": now,
                    "last_accessed_at": now,
                },
            )
        record.encryption_key_hash = key_hash
        record.status = DownloadStatusEnum.ACTIVE
        record.file_size_bytes = 0
        record.downloaded_at = now
        record.last_accessed_at = now
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    def get_active_by_user(self, db: Session, *, user_id: int, device_id: Optional[str] = None) -> List[OfflineDownload]:
        query = (
            db.query(self.model)
            .options(selectinload(self.model.lesson).selectinload(Lesson.course))
            .filter(self.model.user_id == user_id, self.model.status == DownloadStatusEnum.ACTIVE)
        )
        if device_id:
            query = query.filter(self.model.device_id == device_id)
        return query.order_by(self.model.downloaded_at.desc()).all()

    def set_status_for_user(self, db: Session, *, user_id: int, status: DownloadStatusEnum) -> int:
        count = (
            db.query(self.model)
            .filter(self.model.user_id == user_id, self.model.status == DownloadStatusEnum.ACTIVE)
            .update({self.model.status: status}, synchronize_session=False)
        )
        db.commit()
        return count

    def get_stats(self, db: Session, *, top: int = 10) -> Dict[str, Any]:
        active = self.model.status == DownloadStatusEnum.ACTIVE
        totals = db.query(
            func.count(func.distinct(self.model.user_id)),
            func.count(func.distinct(self.model.lesson_id)),
            func.count(self.model.id),
            func.coalesce(func.sum(self.model.file_size_bytes), 0),
        ).filter(active).one()

        top_lessons = (
            db.query(Lesson.id, Lesson.title, func.count(self.model.id).label("download_count"))
            .join(Lesson, Lesson.id == self.model.lesson_id)
            .filter(active)
            .group_by(Lesson.id, Lesson.title)
            .order_by(func.count(self.model.id).desc())
            .limit(top)
            .all()
        )
        return {
            "unique_users": int(totals[0] or 0),
            "unique_lessons": int(totals[1] or 0),
            "total_downloads": int(totals[2] or 0),
            "total_size_bytes": int(totals[3] or 0),
            "top_lessons": [
                {"lesson_id": row.id, "title": row.title, "download_count": int(row.download_count)}
                for row in top_lessons
            ],
        }

offline_download = CRUDOfflineDownload(OfflineDownload)
