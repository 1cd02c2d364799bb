from datetime import datetime, timedelta, timezone

import pytest

from shadanga.core.constants import AccessCodeErrorEnum, AccessCodeTypeEnum
from shadanga.core.exceptions import NotFoundError, ValidationError
from shadanga.services.access_code import access_code_service, generate_code, is_well_formed_code
from shadanga.crud.access_code import AccessCodeStore

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_generated_codes_are_six_digits():
    for _ in range(200):
        code = generate_code()
        assert is_well_formed_code(code)
        assert 100000 <= int(code) <= 999999


@pytest.mark.parametrize("value", ["12345", "1234567", "12a456", " 12345", "١٢٣٤٥٦", 123456, None])
def test_malformed_codes(value):
    assert not is_well_formed_code(value)


class TestGenerate:
    def test_temporary_code_expiry(self, db_session, lesson_factory):
        lesson = lesson_factory(access_code_enabled=False)
        code = access_code_service.generate(
            db_session, lesson.id, AccessCodeTypeEnum.TEMPORARY, expires_in_minutes=30, now=NOW
        )
        assert code.expires_at == NOW + timedelta(minutes=30)
        assert code.generated_at == NOW
        assert code.is_enabled is True

    def test_permanent_code_ignores_expiry(self, db_session, lesson_factory):
        lesson = lesson_factory()
        code = access_code_service.generate(db_session, lesson.id, "permanent", expires_in_minutes=30, now=NOW)
        assert code.expires_at is None

    @pytest.mark.parametrize("minutes", [None, 0, -5, True, 1.5])
    def test_temporary_code_needs_positive_minutes(self, db_session, lesson_factory, minutes):
        lesson = lesson_factory()
        with pytest.raises(ValidationError):
            access_code_service.generate(db_session, lesson.id, "temporary", expires_in_minutes=minutes)
        db_session.refresh(lesson)
        assert lesson.access_code is None

    def test_unknown_type(self, db_session, lesson_factory):
        lesson = lesson_factory()
        with pytest.raises(ValidationError):
            access_code_service.generate(db_session, lesson.id, "forever")

    def test_unknown_lesson(self, db_session):
        with pytest.raises(NotFoundError):
            access_code_service.generate(db_session, 987654, "permanent")


class TestVerify:
    def test_expiry_boundary(self, db_session, lesson_factory):
        lesson = lesson_factory()
        code = access_code_service.generate(db_session, lesson.id, "temporary", expires_in_minutes=10, now=NOW)
        expires_at = NOW + timedelta(minutes=10)

        at_boundary = access_code_service.verify(db_session, lesson.id, code.code, now=expires_at)
        after = access_code_service.verify(db_session, lesson.id, code.code, now=expires_at + timedelta(seconds=1))
        assert at_boundary.valid is True
        assert after.valid is False
        assert after.error == AccessCodeErrorEnum.CODE_EXPIRED.value

    def test_expiry_reported_before_digit_mismatch(self, db_session, lesson_factory):
        lesson = lesson_factory()
        code = access_code_service.generate(db_session, lesson.id, "temporary", expires_in_minutes=1, now=NOW)
        wrong = "111111" if code.code != "111111" else "222222"
        result = access_code_service.verify(db_session, lesson.id, wrong, now=NOW + timedelta(hours=1))
        assert result.error == AccessCodeErrorEnum.CODE_EXPIRED.value

    def test_disabled_lesson(self, db_session, lesson_factory):
        lesson = lesson_factory()
        code = access_code_service.generate(db_session, lesson.id, "permanent")
        access_code_service.toggle(db_session, lesson.id, False)
        result = access_code_service.verify(db_session, lesson.id, code.code)
        assert result.error == AccessCodeErrorEnum.ACCESS_CODE_DISABLED.value

    def test_no_code_configured(self, db_session, lesson_factory):
        lesson = lesson_factory(access_code_enabled=True)
        result = access_code_service.verify(db_session, lesson.id, "123456")
        assert result.error == AccessCodeErrorEnum.NO_CODE_CONFIGURED.value

    def test_malformed_code_checked_before_lookup(self, db_session):
        with pytest.raises(ValidationError):
            access_code_service.verify(db_session, 987654, "abc")
        with pytest.raises(NotFoundError):
            access_code_service.verify(db_session, 987654, "123456")


class TestClear:
    def test_clear_keeps_enabled_flag(self, db_session, lesson_factory):
        lesson = lesson_factory()
        access_code_service.generate(db_session, lesson.id, "temporary", expires_in_minutes=5)
        access_code_service.clear(db_session, lesson.id)

        db_session.refresh(lesson)
        assert lesson.access_code is None
        assert lesson.access_code_type is None
        assert lesson.access_code_expires_at is None
        assert lesson.access_code_generated_at is None
        assert lesson.access_code_enabled is True

    def test_clear_without_code(self, db_session, lesson_factory):
        lesson = lesson_factory()
        with pytest.raises(NotFoundError):
            access_code_service.clear(db_session, lesson.id)


def test_is_expired_treats_naive_values_as_utc():
    class Row:
        access_code_type = AccessCodeTypeEnum.TEMPORARY
        access_code_expires_at = datetime(2026, 3, 1, 9, 0)

    assert not AccessCodeStore.is_expired(Row, datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))
    assert AccessCodeStore.is_expired(Row, datetime(2026, 3, 1, 9, 0, 1))
