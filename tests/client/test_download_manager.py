import errno
import re

import httpx
import pytest

from shadanga.client.api import ApiClient
from shadanga.client.downloads import OfflineDownloadManager, format_bytes
from shadanga.client.errors import NetworkError, StorageError
from shadanga.client.schemas import DownloadStatus, SessionUser
from shadanga.client.session import SessionContext
from shadanga.client.settings import ClientSettings
from shadanga.client.storage import LocalStore

AUDIO_URL = "https://cdn.test/audio/lesson-5.mp3"
AUDIO = bytes(range(256)) * 64


class FakeServer:
    """Answers the download endpoints the way the API does."""

    def __init__(self, audio=AUDIO, audio_status=200, chunked=False, fail_audio=False, fail_delete=False, fail_listing=False):
        self.fail_listing = fail_listing
        self.revoked = False
        self.audio = audio
        self.audio_status = audio_status
        self.chunked = chunked
        self.fail_audio = fail_audio
        self.fail_delete = fail_delete
        self.calls = []
        self.key_body = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        if request.url.host == "cdn.test":
            if self.fail_audio:
                raise httpx.ConnectError("connection reset", request=request)
            if self.chunked:
                return httpx.Response(self.audio_status, content=self._chunks())
            return httpx.Response(self.audio_status, content=self.audio)
        if path == "/downloads/my":
            if self.fail_listing:
                raise httpx.ConnectError("offline", request=request)
            listed = [] if self.revoked else [{"lesson_id": 5, "device_id": request.url.params.get("device_id")}]
            return httpx.Response(200, json={"message": "ok", "data": listed})
        if path == "/downloads/devices":
            return httpx.Response(201, json={"message": "ok", "data": {"id": 1}})
        if path.startswith("/downloads/authorize/"):
            return httpx.Response(200, json={"message": "ok", "data": {
                "lesson": {
                    "id": 5, "title": "Breath", "course_id": 2, "course_title": "Foundations",
                    "duration_seconds": 600, "audio_url": AUDIO_URL,
                },
                "algorithm": "AES-256-CBC",
            }})
        if path.startswith("/downloads/keys/"):
            self.key_body = request.content
            return httpx.Response(201, json={"message": "ok", "data": None})
        if path.startswith("/downloads/confirm/"):
            return httpx.Response(200, json={"message": "ok", "data": None})
        if request.method == "DELETE":
            if self.fail_delete:
                return httpx.Response(500, json={"error": {"code": "INTERNAL_SERVER_ERROR", "message": "boom"}})
            return httpx.Response(200, json={"message": "ok", "data": None})
        return httpx.Response(404, json={"error": {"code": "NOT_FOUND", "message": "Not found"}})

    async def _chunks(self):
        for i in range(0, len(self.audio), 4096):
            yield self.audio[i:i + 4096]


def _manager(tmp_path, server, **store_kwargs):
    settings = ClientSettings(API_BASE_URL="https://api.test", PLATFORM="android", STORAGE_DIR=tmp_path)
    session = SessionContext()
    session.start("token", SessionUser(id=1, email="a@test.com", full_name="A", role="learner"))
    api = ApiClient(settings, session, transport=httpx.MockTransport(server.handler))
    store = LocalStore(
        tmp_path,
        chunk_threshold=store_kwargs.get("chunk_threshold", settings.CHUNKED_STORAGE_THRESHOLD_BYTES),
        chunk_size=store_kwargs.get("chunk_size", settings.STORAGE_CHUNK_SIZE_BYTES),
    )
    return OfflineDownloadManager(api, store, settings)


def _collapse(statuses):
    seen = []
    for status in statuses:
        if not seen or seen[-1] != status:
            seen.append(status)
    return seen


@pytest.mark.asyncio
async def test_download_progresses_through_every_stage(tmp_path):
    server = FakeServer()
    manager = _manager(tmp_path, server)
    events = []

    entry = await manager.start_download(5, 2, on_progress=events.append)

    assert _collapse([e.status for e in events]) == [
        DownloadStatus.PENDING,
        DownloadStatus.DOWNLOADING,
        DownloadStatus.ENCRYPTING,
        DownloadStatus.SAVING,
        DownloadStatus.COMPLETED,
    ]
    percents = [e.percent for e in events]
    assert percents == sorted(percents)
    assert percents[-1] == 100
    assert all(1 <= p <= 100 for p in percents)

    assert entry.course_title == "Foundations"
    assert manager.is_lesson_downloaded(5)
    assert manager.get_storage_size() == entry.file_size_bytes
    assert ("POST", "/downloads/confirm/5") in server.calls


@pytest.mark.asyncio
async def test_only_key_hash_leaves_the_device(tmp_path):
    server = FakeServer()
    manager = _manager(tmp_path, server)
    await manager.start_download(5, 2)

    key = manager.store.get_key(5)
    body = server.key_body.decode()
    assert key not in body
    assert re.search(r'"encryption_key_hash":\s*"[0-9a-f]{64}"', body)


@pytest.mark.asyncio
async def test_unknown_length_uses_estimate(tmp_path):
    server = FakeServer(chunked=True)
    manager = _manager(tmp_path, server)
    events = []
    await manager.start_download(5, 2, on_progress=events.append)

    downloading = [e for e in events if e.status == DownloadStatus.DOWNLOADING and e.total]
    assert downloading
    assert downloading[0].total == manager.settings.ESTIMATED_AUDIO_SIZE_BYTES


@pytest.mark.asyncio
async def test_downloaded_audio_plays_offline(tmp_path):
    manager = _manager(tmp_path, FakeServer())
    await manager.start_download(5, 2)
    assert await manager.load_audio(5) == AUDIO


@pytest.mark.asyncio
async def test_large_packages_are_chunked(tmp_path):
    manager = _manager(tmp_path, FakeServer(), chunk_threshold=1024, chunk_size=1000)
    await manager.start_download(5, 2)

    assert (tmp_path / "audio" / "5_chunks.json").exists()
    assert not (tmp_path / "audio" / "5_data.b64").exists()
    assert await manager.load_audio(5) == AUDIO


@pytest.mark.asyncio
async def test_network_failure_reports_error_and_stores_nothing(tmp_path):
    manager = _manager(tmp_path, FakeServer(fail_audio=True))
    events = []
    with pytest.raises(NetworkError):
        await manager.start_download(5, 2, on_progress=events.append)

    assert events[-1].status == DownloadStatus.ERROR
    assert events[-1].error
    assert not manager.is_lesson_downloaded(5)
    assert not manager.store.has_package(5)
    assert manager.store.get_key(5) is None


@pytest.mark.asyncio
async def test_audio_http_error(tmp_path):
    manager = _manager(tmp_path, FakeServer(audio_status=403))
    with pytest.raises(NetworkError, match="403"):
        await manager.start_download(5, 2)


@pytest.mark.asyncio
async def test_remove_download(tmp_path):
    server = FakeServer()
    manager = _manager(tmp_path, server)
    await manager.start_download(5, 2)

    await manager.remove_download(5)
    assert not manager.is_lesson_downloaded(5)
    assert not manager.store.has_package(5)
    with pytest.raises(StorageError):
        await manager.load_audio(5)
    assert ("DELETE", "/downloads/5") in server.calls


@pytest.mark.asyncio
async def test_remove_succeeds_when_server_is_unreachable(tmp_path):
    manager = _manager(tmp_path, FakeServer(fail_delete=True))
    await manager.start_download(5, 2)
    await manager.remove_download(5)
    assert not manager.is_lesson_downloaded(5)


@pytest.mark.asyncio
async def test_course_and_clear_all(tmp_path):
    manager = _manager(tmp_path, FakeServer())
    await manager.start_download(5, 2)
    assert [d.lesson_id for d in manager.get_downloaded_lessons_for_course(2)] == [5]
    assert manager.get_downloaded_lessons_for_course(3) == []

    assert await manager.clear_all_downloads() == 1
    assert manager.get_downloaded_lessons() == []
    assert manager.get_storage_size() == 0


@pytest.mark.asyncio
async def test_device_id_is_stable(tmp_path):
    manager = _manager(tmp_path, FakeServer())
    device_id = await manager.get_device_id()
    assert re.fullmatch(r"android-[0-9a-z]+-[0-9a-z]{8}", device_id)
    assert await manager.get_device_id() == device_id
    assert await manager.register_device() == device_id


@pytest.mark.parametrize("size,expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (10 * 1024 * 1024, "10 MB"),
])
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


@pytest.mark.asyncio
async def test_full_key_store_fails_cleanly(tmp_path):
    manager = _manager(tmp_path, FakeServer())

    def disk_full(lesson_id, key):
        raise OSError(errno.ENOSPC, "No space left on device")

    manager.store.save_key = disk_full
    events = []
    with pytest.raises(StorageError, match="storage is full"):
        await manager.start_download(5, 2, on_progress=events.append)

    assert events[-1].status == DownloadStatus.ERROR
    assert list((tmp_path / "audio").iterdir()) == []
    assert not manager.is_lesson_downloaded(5)


@pytest.mark.asyncio
async def test_full_preferences_store_fails_cleanly(tmp_path, monkeypatch):
    manager = _manager(tmp_path, FakeServer())
    await manager.get_device_id()

    def disk_full(self, target):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr("pathlib.Path.replace", disk_full)
    events = []
    with pytest.raises(StorageError, match="storage is full"):
        await manager.start_download(5, 2, on_progress=events.append)
    monkeypatch.undo()

    assert events[-1].status == DownloadStatus.ERROR
    assert list((tmp_path / "audio").iterdir()) == []
    assert manager.store.get_key(5) is None


@pytest.mark.asyncio
async def test_revoked_downloads_are_removed(tmp_path):
    server = FakeServer()
    manager = _manager(tmp_path, server)
    await manager.start_download(5, 2)

    assert await manager.sync_revocations() == 0
    assert manager.is_lesson_downloaded(5)

    server.revoked = True
    assert await manager.sync_revocations() == 1
    assert not manager.is_lesson_downloaded(5)
    with pytest.raises(StorageError):
        await manager.load_audio(5)


@pytest.mark.asyncio
async def test_revocation_sync_keeps_downloads_offline(tmp_path):
    server = FakeServer()
    manager = _manager(tmp_path, server)
    await manager.start_download(5, 2)

    server.fail_listing = True
    server.revoked = True
    assert await manager.sync_revocations() == 0
    assert await manager.load_audio(5) == AUDIO


@pytest.mark.asyncio
async def test_missing_package_is_not_reported_as_downloaded(tmp_path):
    manager = _manager(tmp_path, FakeServer())
    await manager.start_download(5, 2)
    manager.store.delete_package(5)
    assert not manager.is_lesson_downloaded(5)
