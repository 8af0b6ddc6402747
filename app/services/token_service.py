# app/services/token_service.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import unauthorized
from app.core.security import create_token, decode_token
from app.infrastructure.database.models import Token, TokenType, User
from app.schemas.auth import AuthTokens, TokenInfo

logger = logging.getLogger(__name__)


class SqlTokenStore:
    """
    Issues signed tokens and keeps the non-access ones in the `tokens` table.

    Mutations only flush; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def generate_token(self, user_id: int, expires: datetime, token_type: TokenType) -> str:
        return create_token(user_id, expires, token_type.value)

    async def save_token(
        self,
        token: str,
        user_id: int,
        expires: datetime,
        token_type: TokenType,
        blacklisted: bool = False
    ) -> Token:
        token_doc = Token(
            token=token,
            user_id=user_id,
            expires=expires,
            type=token_type,
            blacklisted=blacklisted,
        )
        self.db.add(token_doc)
        await self.db.flush()
        logger.debug(f"Stored {token_type.value} token {token[:10]}... for user {user_id}")
        return token_doc

    async def verify_token(self, token: str, token_type: TokenType) -> Token:
        """
        Checks signature, expiry and type of `token`, then returns its stored,
        non-blacklisted record. Raises `unauthorized` otherwise.
        """
        payload = decode_token(token)
        if payload.type != token_type.value:
            logger.warning(f"Token type mismatch: expected {token_type.value}, got {payload.type}")
            raise unauthorized("Invalid token type.")

        try:
            user_id = int(payload.sub)
        except ValueError:
            raise unauthorized("Invalid token subject.")

        query = select(Token).filter(
            Token.token == token,
            Token.type == token_type,
            Token.user_id == user_id,
            Token.blacklisted == False,
        )
        token_doc = (await self.db.execute(query)).scalar_one_or_none()
        if token_doc is None:
            logger.warning(f"No stored {token_type.value} token matches {token[:10]}...")
            raise unauthorized("Token not found")
        return token_doc

    async def find_token(self, token: str, token_type: TokenType, blacklisted: bool = False) -> Optional[Token]:
        query = select(Token).filter(
            Token.token == token,
            Token.type == token_type,
            Token.blacklisted == blacklisted,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def delete_token(self, token_doc: Token) -> None:
        await self.db.delete(token_doc)
        await self.db.flush()

    async def delete_tokens(self, user_id: int, token_type: TokenType) -> None:
        result = await self.db.execute(
            delete(Token).where(Token.user_id == user_id, Token.type == token_type)
        )
        logger.debug(f"Deleted {result.rowcount} {token_type.value} token(s) for user {user_id}")

    async def generate_auth_tokens(self, user: User) -> AuthTokens:
        """
        Mints an access token (not stored) and a refresh token (stored).
        """
        now = datetime.now(timezone.utc)
        access_expires = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = self.generate_token(user.id, access_expires, TokenType.ACCESS)

        refresh_expires = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        refresh_token = self.generate_token(user.id, refresh_expires, TokenType.REFRESH)
        await self.save_token(refresh_token, user.id, refresh_expires, TokenType.REFRESH)

        return AuthTokens(
            access=TokenInfo(token=access_token, expires=access_expires),
            refresh=TokenInfo(token=refresh_token, expires=refresh_expires),
        )

    async def generate_reset_password_token(self, user: User) -> str:
        expires = datetime.now(timezone.utc) + timedelta(minutes=settings.RESET_PASSWORD_TOKEN_EXPIRE_MINUTES)
        reset_password_token = self.generate_token(user.id, expires, TokenType.RESET_PASSWORD)
        await self.save_token(reset_password_token, user.id, expires, TokenType.RESET_PASSWORD)
        return reset_password_token

    async def generate_verify_email_token(self, user: User) -> str:
        expires = datetime.now(timezone.utc) + timedelta(minutes=settings.VERIFY_EMAIL_TOKEN_EXPIRE_MINUTES)
        verify_email_token = self.generate_token(user.id, expires, TokenType.VERIFY_EMAIL)
        await self.save_token(verify_email_token, user.id, expires, TokenType.VERIFY_EMAIL)
        return verify_email_token

    async def purge_expired_tokens(self, now: Optional[datetime] = None) -> int:
        """Deletes every stored token whose expiry has passed. Returns the count."""
        cutoff = now or datetime.now(timezone.utc)
        result = await self.db.execute(
            delete(Token).where(Token.expires < cutoff).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
