from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
import logging

import httpx

from shadanga.client.errors import ApiError, NetworkError
from shadanga.client.schemas import DownloadGrant, LessonInfo, PlaybackProgress, SessionUser
from shadanga.client.session import SessionContext
from shadanga.client.settings import ClientSettings
from shadanga.schemas.access_code import AccessCodeAccepted, AccessCodeRejection, AccessCodeVerifyResult

logger = logging.getLogger(__name__)

# Statuses whose server text is replaced before it reaches the learner.
_SAFE_MESSAGES = {
    401: "Your session has expired. Please sign in again.",
    422: "The request could not be processed. Please check your input.",
}
_SERVER_FAILURE_MESSAGE = "Something went wrong on our side. Please try again later."


def _error_from_response(response: httpx.Response) -> ApiError:
    code = None
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = body["error"].get("message")

    status_code = response.status_code
    if status_code >= 500:
        message = _SERVER_FAILURE_MESSAGE
    elif status_code in _SAFE_MESSAGES:
        message = _SAFE_MESSAGES[status_code]
    return ApiError(status_code, message or f"Request failed ({status_code}).", code=code)


class ApiClient:
    """Typed async client for the lesson, access code and download endpoints."""

    def __init__(
        self,
        settings: ClientSettings,
        session: SessionContext,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.session = session
        self.transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.API_BASE_URL,
            timeout=timeout or self.settings.REQUEST_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        auth: bool = True,
    ) -> Any:
        headers = self.session.auth_headers() if auth else {}
        async with self._client() as client:
            try:
                response = await client.request(method, path, json=json, params=params, headers=headers)
            except httpx.TimeoutException:
                raise NetworkError("The server took too long to respond. Please check your connection and try again.")
            except httpx.RequestError as e:
                logger.warning(f"{method} {path} failed: {e}")
                raise NetworkError("Unable to reach the server. Please check your internet connection.")

        if response.is_error:
            raise _error_from_response(response)
        return response.json().get("data")

    # Auth

    async def login(self, email: str, password: str) -> SessionUser:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password}, auth=False)
        user = SessionUser.model_validate(data["user"])
        self.session.start(data["token"]["access_token"], user)
        return user

    async def logout(self) -> None:
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.session.clear()

    # Lessons and access codes

    async def get_lesson(self, lesson_id: int) -> LessonInfo:
        data = await self._request("GET", f"/lessons/{lesson_id}")
        return LessonInfo.model_validate(data)

    async def verify_access_code(self, lesson_id: int, code: str) -> AccessCodeVerifyResult:
        data = await self._request("POST", f"/lessons/{lesson_id}/access-code/verify", json={"code": code})
        if data.get("valid"):
            return AccessCodeAccepted.model_validate(data)
        return AccessCodeRejection.model_validate(data)

    async def start_lesson(self, lesson_id: int) -> PlaybackProgress:
        data = await self._request("POST", f"/lessons/{lesson_id}/start")
        return PlaybackProgress.model_validate(data)

    async def record_pause(self, lesson_id: int) -> PlaybackProgress:
        data = await self._request("POST", f"/lessons/{lesson_id}/pause")
        return PlaybackProgress.model_validate(data)

    async def complete_lesson(self, lesson_id: int, time_spent_seconds: Optional[int] = None) -> PlaybackProgress:
        data = await self._request(
            "POST", f"/lessons/{lesson_id}/complete", json={"time_spent_seconds": time_spent_seconds}
        )
        return PlaybackProgress.model_validate(data)

    # Offline downloads

    async def register_device(self, device_id: str, device_name: str, platform: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/downloads/devices",
            json={"device_id": device_id, "device_name": device_name, "platform": platform},
        )

    async def authorize_download(self, lesson_id: int, device_id: str) -> DownloadGrant:
        data = await self._request("POST", f"/downloads/authorize/{lesson_id}", json={"device_id": device_id})
        lesson = data["lesson"]
        return DownloadGrant(
            lesson_id=lesson["id"],
            title=lesson["title"],
            course_id=lesson["course_id"],
            course_title=lesson["course_title"],
            duration_seconds=lesson["duration_seconds"],
            audio_url=lesson["audio_url"],
            algorithm=data["algorithm"],
        )

    async def register_download_key(self, lesson_id: int, device_id: str, key_hash: str) -> None:
        await self._request(
            "POST",
            f"/downloads/keys/{lesson_id}",
            json={"device_id": device_id, "encryption_key_hash": key_hash},
        )

    async def confirm_download(self, lesson_id: int, device_id: str, file_size_bytes: int) -> None:
        await self._request(
            "POST",
            f"/downloads/confirm/{lesson_id}",
            json={"device_id": device_id, "file_size_bytes": file_size_bytes},
        )

    async def delete_download(self, lesson_id: int, device_id: str) -> None:
        await self._request("DELETE", f"/downloads/{lesson_id}", params={"device_id": device_id})

    async def get_my_downloads(self, device_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"device_id": device_id} if device_id else None
        return await self._request("GET", "/downloads/my", params=params)

    async def stream_audio(self, url: str) -> AsyncIterator[Tuple[bytes, Optional[int]]]:
        """Yield `(chunk, total_bytes)` pairs; total is None when the server sends no length."""
        try:
            async with self._client(timeout=self.settings.DOWNLOAD_TIMEOUT_SECONDS) as client:
                async with client.stream("GET", url) as response:
                    if response.is_error:
                        raise NetworkError(f"Failed to download audio file ({response.status_code}).")
                    content_length = response.headers.get("content-length")
                    total = int(content_length) if content_length else None
                    async for chunk in response.aiter_bytes():
                        yield chunk, total
        except httpx.TimeoutException:
            raise NetworkError("Download timeout. Please check your internet connection and try again.")
        except httpx.RequestError as e:
            logger.warning(f"Audio download from {httpx.URL(url).host} failed: {e}")
            raise NetworkError("Download interrupted. Please check your internet connection and try again.")
