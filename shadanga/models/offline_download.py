from sqlalchemy import Column, Integer, String, BigInteger, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shadanga.core.database import Base
from shadanga.core.constants import DownloadStatusEnum

class OfflineDownload(Base):
    """Server-side registration of a download. Holds the key hash only."""
    __tablename__ = "offline_downloads"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", "device_id", name="uq_offline_downloads_user_lesson_device"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(String(255), nullable=False)
    encryption_key_hash = Column(String(255), nullable=False)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)
    status = Column(Enum(DownloadStatusEnum), nullable=False, default=DownloadStatusEnum.ACTIVE)
    downloaded_at = Column(DateTime(timezone=True), server_default=func.now())
    last_accessed_at = Column(DateTime(timezone=True), server_default=func.now())

    lesson = relationship("Lesson")
