from typing import Optional


class ClientError(Exception):
    """Base for every error the learner client raises. `message` is safe to show."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(ClientError):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class NetworkError(ClientError):
    retryable = True


class StorageError(ClientError):
    pass


class DecryptionError(ClientError):
    pass


class DeviceCheckError(ClientError):
    """Automatic detection failed; the item falls back to manual attestation."""


class AdmissionError(ClientError):
    """An admission flow operation was called in a state that does not allow it."""


class PauseBudgetExhaustedError(AdmissionError):
    def __init__(self, message: str = "No pauses remaining for this lesson."):
        super().__init__(message)


class SeekNotAllowedError(AdmissionError):
    def __init__(self, message: str = "Seeking is not allowed during a lesson."):
        super().__init__(message)
