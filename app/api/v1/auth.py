import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.email_utils import send_email, build_email_verification_context, build_password_reset_context
from app.dependencies.auth import get_auth_service, get_current_user, get_token_store, get_user_directory
from app.infrastructure.database.models import User
from app.infrastructure.database.session import get_db
from app.schemas.auth import (
    AuthResponse,
    AuthTokens,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshTokenRequest,
    ResetPasswordRequest,
)
from app.schemas.user import UserCreate, UserResponse
from app.services.auth_service import AuthService
from app.services.token_service import SqlTokenStore
from app.services.user_service import SqlUserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link will be sent."

# =========================
# Auth API Endpoints
# =========================

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    users: Annotated[SqlUserDirectory, Depends(get_user_directory)],
    tokens: Annotated[SqlTokenStore, Depends(get_token_store)],
):
    """
    Register a new user and log them in.
    """
    user = await users.create_user(data)
    auth_tokens = await tokens.generate_auth_tokens(user)
    await db.commit()
    logger.info(f"User {user.id} registered.")
    return AuthResponse(user=UserResponse.model_validate(user), tokens=auth_tokens)

@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def login_endpoint(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    tokens: Annotated[SqlTokenStore, Depends(get_token_store)],
):
    """
    Authenticate with email and password and return a fresh token pair.
    """
    user = await auth_service.login_user_with_email_and_password(data.email, data.password)
    auth_tokens = await tokens.generate_auth_tokens(user)
    await db.commit()
    return AuthResponse(user=UserResponse.model_validate(user), tokens=auth_tokens)

@router.post("/logout", response_model=MessageResponse, status_code=status.HTTP_200_OK)
async def logout_endpoint(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    logout_request: LogoutRequest = Body(...),
):
    """
    Revoke the given refresh token.
    """
    await auth_service.logout(logout_request.refresh_token)
    return {"message": "Logged out successfully."}

@router.post("/refresh-tokens", response_model=AuthTokens, status_code=status.HTTP_200_OK)
async def refresh_tokens_endpoint(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    refresh_request: RefreshTokenRequest = Body(...),
):
    """
    Exchange a refresh token for a new token pair. The presented token is consumed.
    """
    result = await auth_service.refresh_auth(refresh_request.refresh_token)
    return result.tokens

@router.post("/forgot-password", response_model=MessageResponse, status_code=status.HTTP_200_OK)
async def forgot_password_endpoint(
    request_data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_db)],
    users: Annotated[SqlUserDirectory, Depends(get_user_directory)],
    tokens: Annotated[SqlTokenStore, Depends(get_token_store)],
):
    """
    Email a password reset link. The response is the same whether or not the
    address belongs to an account.
    """
    user = await users.get_user_by_email(request_data.email)
    if not user:
        logger.warning("Forgot password requested for an unknown email.")
        return {"message": FORGOT_PASSWORD_MESSAGE}

    reset_password_token = await tokens.generate_reset_password_token(user)
    await db.commit()

    background_tasks.add_task(
        send_email,
        to_email=user.email,
        subject=f"Reset your password - {settings.APP_NAME}",
        template_name="password_reset",
        context=build_password_reset_context(user.name, reset_password_token),
    )
    logger.info(f"Password reset email for user {user.id} offloaded to background task.")
    return {"message": FORGOT_PASSWORD_MESSAGE}

@router.post("/reset-password", response_model=MessageResponse, status_code=status.HTTP_200_OK)
async def reset_password_endpoint(
    request_data: ResetPasswordRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    token: str = Query(..., description="Password reset token received via email"),
):
    """
    Set a new password using a reset token.
    """
    await auth_service.reset_password(token, request_data.password)
    return {"message": "Password reset successfully."}

@router.post("/send-verification-email", response_model=MessageResponse, status_code=status.HTTP_200_OK)
async def send_verification_email_endpoint(
    background_tasks: BackgroundTasks,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    tokens: Annotated[SqlTokenStore, Depends(get_token_store)],
):
    """
    Email a verification link to the authenticated user.
    """
    verify_email_token = await tokens.generate_verify_email_token(current_user)
    await db.commit()

    background_tasks.add_task(
        send_email,
        to_email=current_user.email,
        subject=f"Verify your email - {settings.APP_NAME}",
        template_name="verification",
        context=build_email_verification_context(current_user.name, verify_email_token),
    )
    logger.info(f"Verification email for user {current_user.id} offloaded to background task.")
    return {"message": "Verification email sent."}

@router.post("/verify-email", response_model=UserResponse, status_code=status.HTTP_200_OK)
async def verify_email_endpoint(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    token: str = Query(..., description="Verification token received via email"),
):
    """
    Confirm the email address behind a verification token.
    """
    user = await auth_service.verify_email(token)
    logger.info(f"Email verification completed for user {user.id}.")
    return user
