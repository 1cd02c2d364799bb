import hashlib
import uuid

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from shadanga.core.constants import DownloadStatusEnum
from shadanga.crud.offline_download import offline_download as crud_offline_download
from tests.helpers.asserts import api_call

KEY_HASH = hashlib.sha256(b"a" * 64).hexdigest()


def _device_id():
    return f"android-{uuid.uuid4().hex[:8]}-test"

def _register_device(client, headers, device_id):
    return api_call(client, "POST", "/downloads/devices", headers=headers, json={
        "device_id": device_id, "device_name": "Android Device", "platform": "android",
    })

def _download(client, headers, lesson_id, device_id, size=2048):
    api_call(client, "POST", f"/downloads/authorize/{lesson_id}", headers=headers, json={"device_id": device_id})
    api_call(client, "POST", f"/downloads/keys/{lesson_id}", headers=headers, json={
        "device_id": device_id, "encryption_key_hash": KEY_HASH,
    })
    api_call(client, "POST", f"/downloads/confirm/{lesson_id}", headers=headers, json={
        "device_id": device_id, "file_size_bytes": size,
    })


class TestDevices:
    def test_register_device_is_idempotent(self, client: TestClient, learner_headers):
        device_id = _device_id()
        first = _register_device(client, learner_headers, device_id).json()["data"]
        second = _register_device(client, learner_headers, device_id).json()["data"]
        assert first["id"] == second["id"]

        devices = api_call(client, "GET", "/downloads/devices", headers=learner_headers).json()["data"]
        assert [d["device_id"] for d in devices] == [device_id]


class TestDownloadAuthorization:
    def test_unregistered_device_is_refused(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll):
        course = course_factory()
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        response = client.post(
            f"/downloads/authorize/{lesson.id}", headers=learner_headers, json={"device_id": _device_id()}
        )
        assert response.status_code == 403

    def test_enrollment_is_required(self, client: TestClient, learner_headers, lesson_factory):
        lesson = lesson_factory()
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)
        response = client.post(
            f"/downloads/authorize/{lesson.id}", headers=learner_headers, json={"device_id": device_id}
        )
        assert response.status_code == 403

    def test_authorization_returns_audio_url_and_no_key(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll):
        course = course_factory(title="Morning Practice")
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)

        data = api_call(
            client, "POST", f"/downloads/authorize/{lesson.id}", headers=learner_headers, json={"device_id": device_id}
        ).json()["data"]
        assert data["lesson"]["audio_url"] == lesson.audio_url
        assert data["lesson"]["course_title"] == "Morning Practice"
        assert data["algorithm"] == "AES-256-CBC"
        assert "key" not in data

    def test_lesson_without_audio(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll):
        course = course_factory()
        lesson = lesson_factory(course=course, audio_url=None)
        enroll(learner, course)
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)
        response = client.post(
            f"/downloads/authorize/{lesson.id}", headers=learner_headers, json={"device_id": device_id}
        )
        assert response.status_code == 404


class TestDownloadRegistration:
    def test_key_hash_is_stored_not_key(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll, db_session: Session):
        course = course_factory()
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)
        _download(client, learner_headers, lesson.id, device_id, size=4096)

        record = crud_offline_download.get_for_triple(
            db_session, user_id=learner.id, lesson_id=lesson.id, device_id=device_id
        )
        assert record.encryption_key_hash == KEY_HASH
        assert record.file_size_bytes == 4096
        assert record.status == DownloadStatusEnum.ACTIVE

        mine = api_call(client, "GET", "/downloads/my", headers=learner_headers).json()["data"]
        assert [d["lesson_id"] for d in mine] == [lesson.id]

    def test_malformed_key_hash_is_rejected(self, client: TestClient, learner_headers, lesson_factory):
        lesson = lesson_factory()
        response = client.post(f"/downloads/keys/{lesson.id}", headers=learner_headers, json={
            "device_id": _device_id(), "encryption_key_hash": "not-a-hash",
        })
        assert response.status_code == 422

    def test_confirm_without_key_registration(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll):
        course = course_factory()
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        response = client.post(f"/downloads/confirm/{lesson.id}", headers=learner_headers, json={
            "device_id": _device_id(), "file_size_bytes": 10,
        })
        assert response.status_code == 404

    def test_verify_key(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll):
        course = course_factory()
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)
        _download(client, learner_headers, lesson.id, device_id)

        ok = api_call(client, "POST", f"/downloads/verify-key/{lesson.id}", headers=learner_headers, json={
            "device_id": device_id, "encryption_key_hash": KEY_HASH,
        }).json()["data"]
        wrong = api_call(client, "POST", f"/downloads/verify-key/{lesson.id}", headers=learner_headers, json={
            "device_id": device_id, "encryption_key_hash": "0" * 64,
        }).json()["data"]
        assert ok["valid"] is True
        assert wrong["valid"] is False

    def test_delete_download(self, client: TestClient, learner, learner_headers, lesson_factory, course_factory, enroll, db_session: Session):
        course = course_factory()
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)
        _download(client, learner_headers, lesson.id, device_id)

        api_call(client, "DELETE", f"/downloads/{lesson.id}?device_id={device_id}", headers=learner_headers)

        record = crud_offline_download.get_for_triple(
            db_session, user_id=learner.id, lesson_id=lesson.id, device_id=device_id
        )
        assert record.status == DownloadStatusEnum.DELETED
        assert api_call(client, "GET", "/downloads/my", headers=learner_headers).json()["data"] == []

    def test_delete_unknown_download_is_noop(self, client: TestClient, learner_headers):
        api_call(client, "DELETE", f"/downloads/424242?device_id={_device_id()}", headers=learner_headers)


class TestDownloadAdmin:
    def test_revoke_and_stats(self, client: TestClient, admin_headers, learner, learner_headers, lesson_factory, course_factory, enroll):
        course = course_factory()
        lesson = lesson_factory(course=course)
        enroll(learner, course)
        device_id = _device_id()
        _register_device(client, learner_headers, device_id)
        _download(client, learner_headers, lesson.id, device_id, size=1000)

        stats = api_call(client, "GET", "/downloads/admin/stats", headers=admin_headers).json()["data"]
        assert stats["total_downloads"] >= 1
        assert stats["total_size_bytes"] >= 1000

        revoked = api_call(client, "POST", f"/downloads/admin/revoke/{learner.id}", headers=admin_headers).json()["data"]
        assert revoked["revoked_count"] == 1

        check = api_call(client, "POST", f"/downloads/verify-key/{lesson.id}", headers=learner_headers, json={
            "device_id": device_id, "encryption_key_hash": KEY_HASH,
        }).json()["data"]
        assert check["valid"] is False

    def test_learner_cannot_use_admin_routes(self, client: TestClient, learner, learner_headers):
        assert client.get("/downloads/admin/stats", headers=learner_headers).status_code == 403
        assert client.post(f"/downloads/admin/revoke/{learner.id}", headers=learner_headers).status_code == 403
