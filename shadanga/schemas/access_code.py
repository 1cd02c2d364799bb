from pydantic import BaseModel, ConfigDict, Field, StrictBool
from typing import Literal, Optional, Union
from datetime import datetime

from shadanga.core.constants import AccessCodeTypeEnum, AccessCodeErrorEnum

class AccessCodeGenerate(BaseModel):
    code_type: AccessCodeTypeEnum
    expires_in_minutes: Optional[int] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"code_type": "temporary", "expires_in_minutes": 60}
        }
    )

class AccessCodeToggle(BaseModel):
    enabled: StrictBool

class AccessCodeVerifyRequest(BaseModel):
    code: str

class AccessCode(BaseModel):
    """A freshly generated code, returned to the admin for display."""
    lesson_id: int
    code: str
    code_type: AccessCodeTypeEnum
    expires_at: Optional[datetime] = None
    generated_at: datetime
    is_enabled: bool

    model_config = ConfigDict(use_enum_values=True)

class AccessCodeDetail(BaseModel):
    code: Optional[str] = None
    code_type: Optional[AccessCodeTypeEnum] = None
    expires_at: Optional[datetime] = None
    generated_at: Optional[datetime] = None
    is_expired: bool = False

    model_config = ConfigDict(use_enum_values=True)

class AccessCodeInfo(BaseModel):
    lesson_id: int
    lesson_title: str
    access_code_enabled: bool
    has_access_code: bool
    access_code: Optional[AccessCodeDetail] = None

class AccessCodeToggleResult(BaseModel):
    lesson_id: int
    lesson_title: str
    access_code_enabled: bool
    has_access_code: bool

class AccessCodeAccepted(BaseModel):
    valid: Literal[True] = True
    message: str = "Access code verified successfully"

class AccessCodeRejection(BaseModel):
    valid: Literal[False] = False
    error: AccessCodeErrorEnum
    message: str = Field(..., description="Human-readable reason")

    model_config = ConfigDict(use_enum_values=True)

AccessCodeVerifyResult = Union[AccessCodeAccepted, AccessCodeRejection]
