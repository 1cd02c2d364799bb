from pathlib import Path
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8000"
    PLATFORM: str = "web"
    STORAGE_DIR: Path = Path.home() / ".shadanga"

    REQUEST_TIMEOUT_SECONDS: float = 10.0
    DOWNLOAD_TIMEOUT_SECONDS: float = 300.0

    # Used for progress while the server has not sent a Content-Length.
    ESTIMATED_AUDIO_SIZE_BYTES: int = 10 * 1024 * 1024
    CHUNKED_STORAGE_THRESHOLD_BYTES: int = 50 * 1024 * 1024
    STORAGE_CHUNK_SIZE_BYTES: int = 10 * 1024 * 1024

    class Config:
        env_prefix = "SHADANGA_"
        env_file = ".env"
        extra = "ignore"
