from typing import Optional
from urllib.parse import urlparse
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shadanga.core.config import settings

logger = logging.getLogger(__name__)


def key_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    path = urlparse(url).path
    return path.lstrip("/") or None


class AudioStorageService:
    """Presigns lesson audio stored in Cloudflare R2 through its S3 API."""

    def __init__(self):
        self._client = None

    @property
    def enabled(self) -> bool:
        return bool(
            settings.R2_ACCOUNT_ID
            and settings.R2_ACCESS_KEY_ID
            and settings.R2_SECRET_ACCESS_KEY
            and settings.R2_BUCKET_AUDIOS
        )

    @property
    def endpoint_url(self) -> str:
        return f"https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com"

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name="auto",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            )
        return self._client

    def sign_audio_url(self, audio_url: str, expires_in: Optional[int] = None) -> str:
        if not self.enabled:
            return audio_url

        key = key_from_url(audio_url)
        if not key:
            return audio_url

        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": settings.R2_BUCKET_AUDIOS, "Key": key},
                ExpiresIn=expires_in or settings.AUDIO_URL_EXPIRE_SECONDS,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to sign audio URL for key {key}: {e}")
            return audio_url


audio_storage_service = AudioStorageService()
