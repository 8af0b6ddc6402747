# app/services/auth_service.py

import logging
from dataclasses import dataclass
from typing import Optional

from jose import JWTError

from app.core.exceptions import APIException, not_found, unauthorized
from app.infrastructure.database.models import TokenType, User
from app.schemas.auth import AuthTokens
from app.services.interfaces import TokenStore, UnitOfWork, UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    user: User
    tokens: AuthTokens


class AuthService:
    """
    Login, logout, refresh-token rotation, password reset and email
    verification over a token store and a user directory.

    Every failure inside an operation, expected or not, surfaces to the caller
    as that operation's single generic error (`unauthorized`, or `not_found`
    for logout). The underlying cause is only logged. When a unit of work is
    given, each mutating operation commits once at the end and rolls back on
    failure.
    """

    def __init__(self, tokens: TokenStore, users: UserDirectory, unit_of_work: Optional[UnitOfWork] = None):
        self.tokens = tokens
        self.users = users
        self.unit_of_work = unit_of_work

    async def login_user_with_email_and_password(self, email: str, password: str) -> User:
        """Returns the user owning `email` if `password` matches. No side effects."""
        try:
            user = await self.users.get_user_by_email(email)
            if not user or not await user.is_password_match(password):
                raise unauthorized()
            return user
        except Exception as e:
            self._log_failure("login", e)
            raise unauthorized("Incorrect email or password") from None

    async def logout(self, refresh_token: str) -> None:
        """Revokes a live refresh token by deleting it."""
        try:
            refresh_token_doc = await self.tokens.find_token(refresh_token, TokenType.REFRESH, blacklisted=False)
            if not refresh_token_doc:
                raise not_found()
            await self.tokens.delete_token(refresh_token_doc)
            await self._commit()
            logger.info(f"Refresh token revoked for user {refresh_token_doc.user_id}.")
        except Exception as e:
            await self._abort("logout", e)
            raise not_found("Not found") from None

    async def refresh_auth(self, refresh_token: str) -> AuthResult:
        """Consumes a refresh token and issues a fresh token pair for its user."""
        try:
            refresh_token_doc = await self.tokens.verify_token(refresh_token, TokenType.REFRESH)
            user = await self.users.get_user_by_id(refresh_token_doc.user_id)
            if not user:
                raise unauthorized("User no longer exists")
            await self.tokens.delete_token(refresh_token_doc)
            tokens = await self.tokens.generate_auth_tokens(user)
            await self._commit()
            logger.info(f"Refresh token rotated for user {user.id}.")
            return AuthResult(user=user, tokens=tokens)
        except Exception as e:
            await self._abort("refresh_auth", e)
            raise unauthorized("Please authenticate") from None

    async def reset_password(self, reset_password_token: str, new_password: str) -> None:
        """
        Sets a new password for the token's owner. All outstanding reset
        tokens of that user are deleted, not only the one presented.
        """
        try:
            reset_password_token_doc = await self.tokens.verify_token(reset_password_token, TokenType.RESET_PASSWORD)
            user = await self.users.get_user_by_id(reset_password_token_doc.user_id)
            if not user:
                raise unauthorized("User no longer exists")
            await self.tokens.delete_tokens(user.id, TokenType.RESET_PASSWORD)
            await self.users.update_user_by_id(user.id, {"password": new_password})
            await self._commit()
            logger.info(f"Password reset for user {user.id}.")
        except Exception as e:
            await self._abort("reset_password", e)
            raise unauthorized("Password reset failed") from None

    async def verify_email(self, verify_email_token: str) -> User:
        """Marks the token owner's email as verified and returns the updated user."""
        try:
            verify_email_token_doc = await self.tokens.verify_token(verify_email_token, TokenType.VERIFY_EMAIL)
            user = await self.users.get_user_by_id(verify_email_token_doc.user_id)
            if not user:
                raise unauthorized("User no longer exists")
            await self.tokens.delete_tokens(user.id, TokenType.VERIFY_EMAIL)
            user = await self.users.update_user_by_id(user.id, {"is_email_verified": True})
            await self._commit()
            logger.info(f"Email verified for user {user.id}.")
            return user
        except Exception as e:
            await self._abort("verify_email", e)
            raise unauthorized("Email verification failed") from None

    async def _commit(self) -> None:
        if self.unit_of_work is not None:
            await self.unit_of_work.commit()

    async def _abort(self, operation: str, exc: Exception) -> None:
        self._log_failure(operation, exc)
        if self.unit_of_work is None:
            return
        try:
            await self.unit_of_work.rollback()
        except Exception:
            logger.error(f"Rollback failed after {operation} error.", exc_info=True)

    @staticmethod
    def _log_failure(operation: str, exc: Exception) -> None:
        # Expected auth failures stay quiet; anything else is most likely an
        # infrastructure fault hidden behind the generic response.
        if isinstance(exc, (APIException, JWTError)):
            logger.warning(f"{operation} rejected: {exc.__class__.__name__}: {getattr(exc, 'message', exc)}")
        else:
            logger.error(f"{operation} failed unexpectedly: {exc.__class__.__name__}: {exc}", exc_info=exc)
