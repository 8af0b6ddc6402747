# app/schemas/user.py

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Annotated, Optional
from pydantic.types import StringConstraints

from app.infrastructure.database.models import UserRole


# bcrypt only reads the first 72 bytes of a secret
MAX_PASSWORD_BYTES = 72

Password = Annotated[str, StringConstraints(min_length=8, max_length=MAX_PASSWORD_BYTES)]


def validate_password_strength(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if not any(c.isalpha() for c in v) or not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one letter and one number")
    return v

# ========================
# USER BASE SCHEMA
# ========================

class UserBase(BaseModel):
    name: Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)] = Field(...)
    email: EmailStr = Field(...)

# ========================
# USER CREATE SCHEMA
# ========================

class UserCreate(UserBase):
    password: Password = Field(...)

    @field_validator('password')
    @classmethod
    def check_password_strength(cls, v: str):
        return validate_password_strength(v)

# ========================
# USER RESPONSE SCHEMA
# ========================

class UserResponse(UserBase):
    id: int = Field(...)
    role: UserRole = Field(...)
    is_email_verified: bool = Field(...)
    created_at: Optional[datetime] = Field(None)
    updated_at: Optional[datetime] = Field(None)

    model_config = ConfigDict(from_attributes=True)
