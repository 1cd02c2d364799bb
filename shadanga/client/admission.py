from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional
import logging

from pydantic import BaseModel

from shadanga.client.api import ApiClient
from shadanga.client.device_checks import DeviceCapabilities
from shadanga.client.errors import (
    AdmissionError,
    ApiError,
    ClientError,
    DeviceCheckError,
    PauseBudgetExhaustedError,
    SeekNotAllowedError,
)
from shadanga.client.schemas import LessonInfo, PlaybackProgress
from shadanga.core.constants import ACCESS_CODE_LENGTH, AccessCodeErrorEnum

logger = logging.getLogger(__name__)


class AdmissionState(str, Enum):
    IDLE = "idle"
    AWAITING_CODE = "awaiting_code"
    CHECKING_DEVICE = "checking_device"
    READY = "ready"
    PLAYING = "playing"
    COMPLETED = "completed"


class CheckStatus(str, Enum):
    PENDING = "pending"
    DETECTED = "detected"
    NEEDS_ATTESTATION = "needs_attestation"
    ATTESTED = "attested"
    SKIPPED = "skipped"


SATISFIED_CHECKS = (CheckStatus.DETECTED, CheckStatus.ATTESTED, CheckStatus.SKIPPED)


class AdmissionSettings(BaseModel):
    require_flight_mode: bool = True
    require_earphones: bool = True


class DeviceChecklist(BaseModel):
    flight_mode: CheckStatus = CheckStatus.PENDING
    earphones: CheckStatus = CheckStatus.PENDING
    focus_committed: bool = False

    def missing(self) -> List[str]:
        items = []
        if self.flight_mode not in SATISFIED_CHECKS:
            items.append("flight_mode")
        if self.earphones not in SATISFIED_CHECKS:
            items.append("earphones")
        if not self.focus_committed:
            items.append("focus")
        return items


class LessonAdmissionFlow:
    """
    Gates one learner's attempt at one lesson: access code, device readiness,
    then playback with a limited pause budget and no seeking.
    """

    def __init__(
        self,
        api: ApiClient,
        lesson_id: int,
        capabilities: DeviceCapabilities,
        settings: Optional[AdmissionSettings] = None,
    ):
        self.api = api
        self.lesson_id = lesson_id
        self.capabilities = capabilities
        self.settings = settings or AdmissionSettings()

        self.state = AdmissionState.IDLE
        self.lesson: Optional[LessonInfo] = None
        self.pending_code = ""
        self.code_error: Optional[AccessCodeErrorEnum] = None
        self.code_error_message: Optional[str] = None
        self.checklist = DeviceChecklist()
        self.audio: Any = None
        self.load_error: Optional[str] = None
        self.progress: Optional[PlaybackProgress] = None
        self.is_paused = False

    def _require(self, *states: AdmissionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise AdmissionError(f"Not allowed while {self.state.value} (expected {allowed}).")

    async def begin(self) -> AdmissionState:
        self._require(AdmissionState.IDLE)
        self.lesson = await self.api.get_lesson(self.lesson_id)
        if self.lesson.access_code_enabled:
            self.state = AdmissionState.AWAITING_CODE
        else:
            self._enter_device_checks()
        return self.state

    # Access code

    @property
    def code_expired(self) -> bool:
        """True when the learner should ask an admin to regenerate rather than retype."""
        return self.code_error == AccessCodeErrorEnum.CODE_EXPIRED

    def _reject_code(self, kind: Optional[AccessCodeErrorEnum], message: str) -> None:
        self.code_error = kind
        self.code_error_message = message
        self.pending_code = ""

    async def submit_code(self, code: str) -> bool:
        self._require(AdmissionState.AWAITING_CODE)
        self.pending_code = code
        code = code.strip()
        if len(code) != ACCESS_CODE_LENGTH or not (code.isascii() and code.isdigit()):
            self._reject_code(None, f"Please enter the {ACCESS_CODE_LENGTH}-digit access code.")
            return False

        result = await self.api.verify_access_code(self.lesson_id, code)
        if not result.valid:
            self._reject_code(AccessCodeErrorEnum(result.error), result.message)
            logger.info(f"Access code rejected for lesson {self.lesson_id}: {result.error}")
            return False

        self.code_error = None
        self.code_error_message = None
        self.pending_code = ""
        self._enter_device_checks()
        return True

    # Device readiness

    def _enter_device_checks(self) -> None:
        self.state = AdmissionState.CHECKING_DEVICE
        if not self.settings.require_flight_mode:
            self.checklist.flight_mode = CheckStatus.SKIPPED
        if not self.settings.require_earphones:
            self.checklist.earphones = CheckStatus.SKIPPED

    async def _detect(self, probe: Callable[[], Awaitable[bool]], item: str) -> CheckStatus:
        try:
            detected = await probe()
        except DeviceCheckError as e:
            logger.info(f"{item} detection unavailable, manual confirmation required: {e.message}")
            return CheckStatus.NEEDS_ATTESTATION
        return CheckStatus.DETECTED if detected else CheckStatus.NEEDS_ATTESTATION

    async def run_device_checks(self) -> DeviceChecklist:
        self._require(AdmissionState.CHECKING_DEVICE)
        if self.checklist.flight_mode not in (CheckStatus.SKIPPED, CheckStatus.ATTESTED):
            self.checklist.flight_mode = await self._detect(self.capabilities.is_flight_mode_enabled, "Flight mode")
        if self.checklist.earphones not in (CheckStatus.SKIPPED, CheckStatus.ATTESTED):
            self.checklist.earphones = await self._detect(self.capabilities.are_earphones_connected, "Earphone")
        return self.checklist

    def flight_mode_instructions(self) -> str:
        return self.capabilities.flight_mode_instructions()

    def attest_flight_mode(self) -> None:
        self._require(AdmissionState.CHECKING_DEVICE)
        if self.checklist.flight_mode != CheckStatus.SKIPPED:
            self.checklist.flight_mode = CheckStatus.ATTESTED

    def attest_earphones(self) -> None:
        self._require(AdmissionState.CHECKING_DEVICE)
        if self.checklist.earphones != CheckStatus.SKIPPED:
            self.checklist.earphones = CheckStatus.ATTESTED

    def commit_focus(self, committed: bool = True) -> None:
        self._require(AdmissionState.CHECKING_DEVICE)
        self.checklist.focus_committed = committed

    def confirm_ready(self) -> AdmissionState:
        self._require(AdmissionState.CHECKING_DEVICE)
        missing = self.checklist.missing()
        if missing:
            raise AdmissionError(f"Complete the remaining checks first: {', '.join(missing)}.")
        self.state = AdmissionState.READY
        return self.state

    # Playback

    @property
    def can_retry_loading(self) -> bool:
        return self.state == AdmissionState.READY and self.load_error is not None

    async def start_playback(self, loader: Callable[[], Awaitable[Any]]) -> bool:
        """Load the audio and start the lesson. Returns False if loading failed."""
        self._require(AdmissionState.READY)
        try:
            audio = await loader()
        except Exception as e:
            logger.warning(f"Audio for lesson {self.lesson_id} failed to load: {e}")
            self.load_error = getattr(e, "message", None) or "The audio could not be loaded. Please try again."
            return False

        try:
            self.progress = await self.api.start_lesson(self.lesson_id)
        except ClientError as e:
            logger.warning(f"Lesson {self.lesson_id} could not be started: {e.message}")
            self.audio = None
            self.load_error = e.message
            return False

        self.load_error = None
        self.audio = audio
        self.is_paused = False
        self.state = AdmissionState.PLAYING
        return True

    @property
    def pauses_remaining(self) -> int:
        return self.progress.pauses_remaining if self.progress else 0

    @property
    def can_pause(self) -> bool:
        return self.state == AdmissionState.PLAYING and not self.is_paused and self.pauses_remaining > 0

    async def pause(self) -> int:
        self._require(AdmissionState.PLAYING)
        if self.is_paused:
            raise AdmissionError("Playback is already paused.")
        if self.pauses_remaining <= 0:
            raise PauseBudgetExhaustedError()
        try:
            self.progress = await self.api.record_pause(self.lesson_id)
        except ApiError as e:
            if e.status_code == 409:
                raise PauseBudgetExhaustedError(e.message) from e
            raise
        self.is_paused = True
        return self.pauses_remaining

    def resume(self) -> None:
        self._require(AdmissionState.PLAYING)
        if not self.is_paused:
            raise AdmissionError("Playback is not paused.")
        self.is_paused = False

    def seek(self, position_seconds: float) -> None:
        raise SeekNotAllowedError()

    async def finish(self, time_spent_seconds: Optional[int] = None) -> PlaybackProgress:
        """End of media reached."""
        self._require(AdmissionState.PLAYING)
        self.progress = await self.api.complete_lesson(self.lesson_id, time_spent_seconds)
        self.is_paused = False
        self.state = AdmissionState.COMPLETED
        return self.progress
