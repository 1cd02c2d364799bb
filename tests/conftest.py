import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_HOST", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_USER", "shadanga")
os.environ.setdefault("DATABASE_PASSWORD", "shadanga")
os.environ.setdefault("DATABASE_NAME", "shadanga")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test.db")

import pytest
import uuid
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from shadanga.core.database import Base
from shadanga.core.constants import EnrollmentStatusEnum, RoleEnum
from shadanga.core.security import get_password_hash
from shadanga.crud.course import course as crud_course
from shadanga.crud.course_enrollment import course_enrollment as crud_enrollment
from shadanga.crud.lesson import lesson as crud_lesson
from shadanga.crud.user import user as crud_user
from shadanga.utils import deps as deps_utils
import shadanga.models  # noqa: F401
from shadanga.core.config import settings
import main

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"

@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url == "sqlite:///./test.db" and os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()

@pytest.fixture
def user_factory(db_session):
    def _user_factory(role: RoleEnum = RoleEnum.LEARNER, email=None, password="testpass123", is_active=True):
        user_data = {
            "full_name": f"Test {role.value}",
            "email": email or f"{role.value}-{uuid.uuid4().hex}@test.com",
            "hashed_password": get_password_hash(password),
            "role": role,
            "is_active": is_active,
        }
        return crud_user.create(db_session, obj_in=user_data)
    return _user_factory

@pytest.fixture
def login(client):
    def _login(email, password="testpass123"):
        response = client.post("/auth/login", json={"email": email, "password": password})
        body = response.json()
        token = body.get("data", {}).get("token", {}).get("access_token")
        assert token, f"Login failed or token missing: {body}"
        return {"Authorization": f"Bearer {token}"}
    return _login

@pytest.fixture
def admin_headers(user_factory, login):
    admin = user_factory(RoleEnum.ADMIN)
    return login(admin.email)

@pytest.fixture
def facilitator_headers(user_factory, login):
    facilitator = user_factory(RoleEnum.FACILITATOR)
    return login(facilitator.email)

@pytest.fixture
def learner(user_factory):
    return user_factory(RoleEnum.LEARNER)

@pytest.fixture
def learner_headers(learner, login):
    return login(learner.email)

@pytest.fixture
def course_factory(db_session):
    def _course_factory(title=None):
        return crud_course.create(
            db_session,
            obj_in={"title": title or f"Course {uuid.uuid4().hex[:6]}", "description": "Test course", "price": 0},
        )
    return _course_factory

@pytest.fixture
def lesson_factory(db_session, course_factory):
    def _lesson_factory(course=None, **overrides):
        course = course or course_factory()
        lesson_data = {
            "course_id": course.id,
            "title": f"Lesson {uuid.uuid4().hex[:6]}",
            "audio_url": "https://cdn.example.com/audio/lesson.mp3",
            "duration_seconds": 600,
            "order_index": 0,
            "max_pauses": 3,
            "access_code_enabled": True,
        }
        lesson_data.update(overrides)
        return crud_lesson.create(db_session, obj_in=lesson_data)
    return _lesson_factory

@pytest.fixture
def enroll(db_session):
    def _enroll(user, course, status=EnrollmentStatusEnum.ACTIVE):
        return crud_enrollment.create(
            db_session, obj_in={"user_id": user.id, "course_id": course.id, "status": status}
        )
    return _enroll
