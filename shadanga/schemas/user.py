from pydantic import BaseModel, EmailStr, field_validator, ConfigDict
from typing import Optional
from datetime import datetime

from shadanga.core.constants import RoleEnum

class UserBase(BaseModel):
    full_name: str
    email: EmailStr

class UserCreate(UserBase):
    """Self-registration payload. Always yields a learner account."""
    password: str

    @field_validator("password")
    def validate_password(cls, v):
        if not v or not v.strip():
            raise ValueError("Password cannot be empty or contain only whitespace.")
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long.")
        return v

    @field_validator("full_name")
    def not_empty(cls, v):
        if not v.strip():
            raise ValueError("Full name cannot be empty")
        return v

class User(UserBase):
    id: int
    role: RoleEnum
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

class UserContext(BaseModel):
    """The authenticated caller as seen by services."""
    user: User
    role: RoleEnum

    model_config = ConfigDict(from_attributes=True)
