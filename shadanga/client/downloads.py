from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
import asyncio
import logging
import secrets
import string
import time

from shadanga.client.api import ApiClient
from shadanga.client.encryption import (
    create_encrypted_package,
    decrypt_package,
    generate_key,
    hash_key,
)
from shadanga.client.errors import ClientError, StorageError
from shadanga.client.schemas import DownloadedLesson, DownloadProgress, DownloadStatus
from shadanga.client.settings import ClientSettings
from shadanga.client.storage import LocalStore, storage_error

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id"
DOWNLOADS_INDEX_KEY = "downloads_index"

_BASE36 = string.digits + string.ascii_lowercase

ProgressCallback = Callable[[DownloadProgress], None]


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


class _ProgressReporter:
    """Emits progress that never decreases and stays within [1, 100]."""

    def __init__(self, lesson_id: int, callback: Optional[ProgressCallback]):
        self.lesson_id = lesson_id
        self.callback = callback
        self.percent = 0
        self.status = DownloadStatus.PENDING

    def emit(self, status: DownloadStatus, percent: float, loaded: int = 0, total: int = 0) -> None:
        self.status = status
        self.percent = max(self.percent, min(100, max(1, int(percent))))
        if self.callback:
            self.callback(DownloadProgress(
                lesson_id=self.lesson_id, status=status, percent=self.percent, loaded=loaded, total=total
            ))

    def fail(self, message: str) -> None:
        self.status = DownloadStatus.ERROR
        if self.callback:
            self.callback(DownloadProgress(
                lesson_id=self.lesson_id, status=DownloadStatus.ERROR, percent=max(self.percent, 1), error=message
            ))


class OfflineDownloadManager:
    def __init__(self, api: ApiClient, store: LocalStore, settings: ClientSettings):
        self.api = api
        self.store = store
        self.settings = settings

    # Device identity

    async def get_device_id(self) -> str:
        device_id = self.store.get_preference(DEVICE_ID_KEY)
        if device_id:
            return device_id
        platform = self.settings.PLATFORM.lower()
        stamp = to_base36(int(time.time() * 1000))
        random_part = "".join(secrets.choice(_BASE36) for _ in range(8))
        device_id = f"{platform}-{stamp}-{random_part}"
        self.store.set_preference(DEVICE_ID_KEY, device_id)
        return device_id

    async def register_device(self) -> str:
        device_id = await self.get_device_id()
        platform = self.settings.PLATFORM.lower()
        await self.api.register_device(device_id, f"{platform.capitalize()} Device", platform)
        logger.info(f"Device {device_id} registered")
        return device_id

    # Index

    def _get_index(self) -> Dict[str, DownloadedLesson]:
        raw = self.store.get_preference(DOWNLOADS_INDEX_KEY, {})
        return {key: DownloadedLesson.model_validate(value) for key, value in raw.items()}

    def _save_index(self, index: Dict[str, DownloadedLesson]) -> None:
        self.store.set_preference(
            DOWNLOADS_INDEX_KEY, {key: value.model_dump(mode="json") for key, value in index.items()}
        )

    def _discard(self, lesson_id: int) -> None:
        self.store.delete_package(lesson_id)
        self.store.remove_key(lesson_id)
        index = self._get_index()
        if index.pop(str(lesson_id), None) is not None:
            self._save_index(index)

    # Download pipeline

    async def _fetch_audio(self, url: str, reporter: _ProgressReporter) -> bytes:
        chunks = []
        loaded = 0
        async for chunk, total in self.api.stream_audio(url):
            chunks.append(chunk)
            loaded += len(chunk)
            expected = total or max(self.settings.ESTIMATED_AUDIO_SIZE_BYTES, loaded)
            reporter.emit(DownloadStatus.DOWNLOADING, 10 + loaded / expected * 50, loaded, expected)
        return b"".join(chunks)

    async def start_download(
        self,
        lesson_id: int,
        course_id: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DownloadedLesson:
        reporter = _ProgressReporter(lesson_id, on_progress)
        reporter.emit(DownloadStatus.PENDING, 1)
        saving_started = False
        try:
            device_id = await self.get_device_id()
            grant = await self.api.authorize_download(lesson_id, device_id)

            reporter.emit(DownloadStatus.DOWNLOADING, 10)
            audio = await self._fetch_audio(grant.audio_url, reporter)

            reporter.emit(DownloadStatus.ENCRYPTING, 65)
            key = generate_key()
            package = create_encrypted_package(
                audio,
                key,
                lesson_id,
                lambda p: reporter.emit(DownloadStatus.ENCRYPTING, 65 + p / 10),
            )
            await self.api.register_download_key(lesson_id, device_id, hash_key(key))

            reporter.emit(DownloadStatus.SAVING, 80)
            saving_started = True
            entry = DownloadedLesson(
                lesson_id=lesson_id,
                lesson_title=grant.title,
                course_id=course_id,
                course_title=grant.course_title,
                duration_seconds=grant.duration_seconds,
                downloaded_at=datetime.now(timezone.utc),
                file_size_bytes=len(package.data),
            )
            try:
                await asyncio.to_thread(self.store.save_package, lesson_id, package)
                self.store.save_key(lesson_id, key)
                index = self._get_index()
                index[str(lesson_id)] = entry
                self._save_index(index)
            except OSError as e:
                raise storage_error(e, "save the download") from e
        except ClientError as e:
            logger.warning(f"Download failed for lesson {lesson_id}: {e.message}")
            if saving_started:
                self._discard(lesson_id)
            reporter.fail(e.message)
            raise
        except asyncio.CancelledError:
            logger.info(f"Download cancelled for lesson {lesson_id}")
            if saving_started:
                self._discard(lesson_id)
            raise

        try:
            await self.api.confirm_download(lesson_id, device_id, entry.file_size_bytes)
        except ClientError as e:
            logger.warning(f"Could not confirm download of lesson {lesson_id} with the server: {e.message}")

        reporter.emit(DownloadStatus.COMPLETED, 100)
        logger.info(f"Lesson {lesson_id} downloaded ({format_bytes(entry.file_size_bytes)})")
        return entry

    # Inventory

    def is_lesson_downloaded(self, lesson_id: int) -> bool:
        return str(lesson_id) in self._get_index() and self.store.has_package(lesson_id)

    def get_downloaded_lessons(self) -> List[DownloadedLesson]:
        return list(self._get_index().values())

    def get_downloaded_lessons_for_course(self, course_id: int) -> List[DownloadedLesson]:
        return [d for d in self._get_index().values() if d.course_id == course_id]

    def get_storage_size(self) -> int:
        return sum(d.file_size_bytes for d in self._get_index().values())

    async def load_audio(self, lesson_id: int) -> bytes:
        """Decrypt a downloaded lesson with the key kept on this device. Works offline."""
        package = await asyncio.to_thread(self.store.load_package, lesson_id)
        if package is None:
            raise StorageError("Audio not found. Please download the lesson first.")
        key = self.store.get_key(lesson_id)
        if key is None:
            raise StorageError("The key for this download is missing. Please download the lesson again.")
        return decrypt_package(package, key)

    # Removal

    async def _notify_removed(self, lesson_id: int, device_id: str) -> None:
        try:
            await self.api.delete_download(lesson_id, device_id)
        except ClientError as e:
            logger.warning(f"Server not notified of removal of lesson {lesson_id}: {e.message}")

    async def remove_download(self, lesson_id: int) -> None:
        self._discard(lesson_id)
        if self.api.session.is_authenticated:
            await self._notify_removed(lesson_id, await self.get_device_id())

    async def remove_downloads_for_course(self, course_id: int) -> int:
        lessons = self.get_downloaded_lessons_for_course(course_id)
        for d in lessons:
            await self.remove_download(d.lesson_id)
        return len(lessons)

    async def clear_all_downloads(self) -> int:
        lesson_ids = [d.lesson_id for d in self.get_downloaded_lessons()]
        for lesson_id in lesson_ids:
            self.store.delete_package(lesson_id)
            self.store.remove_key(lesson_id)
        self.store.remove_preference(DOWNLOADS_INDEX_KEY)

        if self.api.session.is_authenticated and lesson_ids:
            device_id = await self.get_device_id()
            for lesson_id in lesson_ids:
                await self._notify_removed(lesson_id, device_id)
        logger.info(f"Cleared {len(lesson_ids)} download(s)")
        return len(lesson_ids)

    # Server-side revocation

    async def sync_revocations(self) -> int:
        """
        Drop local downloads the server no longer lists as active for this device,
        e.g. after an admin revoked them. Keeps everything when offline or signed out.
        """
        local = self.get_downloaded_lessons()
        if not local or not self.api.session.is_authenticated:
            return 0
        device_id = await self.get_device_id()
        try:
            active = await self.api.get_my_downloads(device_id)
        except ClientError as e:
            logger.info(f"Skipping revocation sync: {e.message}")
            return 0

        active_ids = {d["lesson_id"] for d in active or []}
        revoked = [d.lesson_id for d in local if d.lesson_id not in active_ids]
        for lesson_id in revoked:
            self._discard(lesson_id)
        if revoked:
            logger.warning(f"Removed {len(revoked)} revoked download(s): {revoked}")
        return len(revoked)
