from typing import Optional

from fastapi import HTTPException, status

from shadanga.core.constants import AccessCodeErrorEnum


class ValidationError(HTTPException):
    """Malformed input. Surfaced to the caller as-is, never retried."""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Resource not found."):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class PermissionDeniedError(HTTPException):
    def __init__(self, detail: str = "You do not have permission to perform this action."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AccessCodeRejected(HTTPException):
    """Base for every reason a submitted access code is refused."""
    kind: AccessCodeErrorEnum
    default_detail: str = "Access code rejected."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail or self.default_detail)


class AccessCodeDisabledError(AccessCodeRejected):
    kind = AccessCodeErrorEnum.ACCESS_CODE_DISABLED
    default_detail = "Access code is not enabled for this lesson."


class NoCodeConfiguredError(AccessCodeRejected):
    kind = AccessCodeErrorEnum.NO_CODE_CONFIGURED
    default_detail = "No access code set for this lesson. Contact admin."


class ExpiredCodeError(AccessCodeRejected):
    kind = AccessCodeErrorEnum.CODE_EXPIRED
    default_detail = "Access code has expired. Please contact admin for a new code."


class IncorrectCodeError(AccessCodeRejected):
    kind = AccessCodeErrorEnum.INCORRECT_CODE
    default_detail = "Invalid access code."
