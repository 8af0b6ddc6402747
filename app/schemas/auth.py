from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.user import Password, UserResponse, validate_password_strength

# ============================
# Login and Token Schemas
# ============================

class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")
    password: str = Field(..., description="User's password")

class TokenInfo(BaseModel):
    token: str = Field(..., description="Signed JWT")
    expires: datetime = Field(..., description="Expiry of the token (UTC)")

class AuthTokens(BaseModel):
    access: TokenInfo = Field(..., description="Short-lived access token for API authentication")
    refresh: TokenInfo = Field(..., description="Single-use refresh token for obtaining a new token pair")

class AuthResponse(BaseModel):
    user: UserResponse
    tokens: AuthTokens

class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., description="The refresh token to rotate")

class LogoutRequest(BaseModel):
    refresh_token: str = Field(..., description="The refresh token to revoke")

# ============================
# Password / Email Flow Schemas
# ============================

class ForgotPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account to reset the password for")

class ResetPasswordRequest(BaseModel):
    password: Password = Field(..., description="The new password for the account")

    @field_validator('password')
    @classmethod
    def check_password_strength(cls, v: str):
        return validate_password_strength(v)

class MessageResponse(BaseModel):
    """
    Generic success or informational message response.
    """
    message: str = Field(..., description="Human-readable outcome")
