from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.helpers.asserts import api_call


class TestCourseEndpoints:
    def test_admin_creates_course(self, client: TestClient, admin_headers):
        response = api_call(client, "POST", "/courses/", headers=admin_headers, json={
            "title": "Shadanga Kriya Foundations",
            "description": "Guided breathing practice",
            "price": "499.00",
        })
        data = response.json()["data"]
        assert data["title"] == "Shadanga Kriya Foundations"
        assert data["is_active"] is True

        fetched = api_call(client, "GET", f"/courses/{data['id']}", headers=admin_headers).json()["data"]
        assert fetched["id"] == data["id"]

    def test_facilitator_cannot_create_course(self, client: TestClient, facilitator_headers):
        response = client.post("/courses/", headers=facilitator_headers, json={"title": "Nope"})
        assert response.status_code == 403

    def test_missing_course(self, client: TestClient, learner_headers):
        response = client.get("/courses/999999", headers=learner_headers)
        assert response.status_code == 404


class TestLessonEndpoints:
    def test_facilitator_creates_lesson_with_defaults(self, client: TestClient, facilitator_headers, course_factory):
        course = course_factory()
        response = api_call(client, "POST", "/lessons/", headers=facilitator_headers, json={
            "course_id": course.id,
            "title": "Day 1",
            "audio_url": "https://cdn.example.com/day1.mp3",
            "duration_seconds": 1800,
        })
        data = response.json()["data"]
        assert data["max_pauses"] == 3
        assert data["access_code_enabled"] is True
        assert data["has_access_code"] is False
        assert data["access_code_expired"] is False

    def test_lessons_are_listed_in_order(self, client: TestClient, learner_headers, course_factory, lesson_factory):
        course = course_factory()
        second = lesson_factory(course=course, order_index=2)
        first = lesson_factory(course=course, order_index=1)

        data = api_call(client, "GET", f"/courses/{course.id}/lessons/", headers=learner_headers).json()["data"]
        assert [l["id"] for l in data] == [first.id, second.id]

    def test_learner_cannot_create_lesson(self, client: TestClient, learner_headers, course_factory):
        course = course_factory()
        response = client.post("/lessons/", headers=learner_headers, json={"course_id": course.id, "title": "x"})
        assert response.status_code == 403

    def test_update_lesson(self, client: TestClient, admin_headers, lesson_factory):
        lesson = lesson_factory()
        data = api_call(client, "PUT", f"/lessons/{lesson.id}", headers=admin_headers, json={
            "title": "Renamed", "max_pauses": 5,
        }).json()["data"]
        assert data["title"] == "Renamed"
        assert data["max_pauses"] == 5

    def test_deleted_lesson_is_hidden(self, client: TestClient, admin_headers, lesson_factory, db_session: Session):
        lesson = lesson_factory()
        api_call(client, "DELETE", f"/lessons/{lesson.id}", headers=admin_headers)

        db_session.refresh(lesson)
        assert lesson.deleted_at is not None
        assert client.get(f"/lessons/{lesson.id}", headers=admin_headers).status_code == 404
        assert client.get(f"/lessons/{lesson.id}/access-code", headers=admin_headers).status_code == 404


class TestEnrollmentEndpoints:
    def test_admin_enrolls_learner(self, client: TestClient, admin_headers, learner, learner_headers, course_factory):
        course = course_factory()
        response = api_call(client, "POST", "/enrollments/", headers=admin_headers, json={
            "user_id": learner.id, "course_id": course.id,
        })
        assert response.json()["data"]["status"] == "active"

        mine = api_call(client, "GET", "/enrollments/my", headers=learner_headers).json()["data"]
        assert [e["course_id"] for e in mine] == [course.id]

    def test_duplicate_enrollment_conflicts(self, client: TestClient, admin_headers, learner, course_factory, enroll):
        course = course_factory()
        enroll(learner, course)
        response = client.post("/enrollments/", headers=admin_headers, json={"user_id": learner.id, "course_id": course.id})
        assert response.status_code == 409

    def test_learner_cannot_enroll_others(self, client: TestClient, learner_headers, learner, course_factory):
        course = course_factory()
        response = client.post("/enrollments/", headers=learner_headers, json={"user_id": learner.id, "course_id": course.id})
        assert response.status_code == 403
