# app/services/interfaces.py
"""Collaborator protocols consumed by the auth workflow.

The SQLAlchemy-backed stores in `token_service` and `user_service` satisfy
these; tests substitute in-memory fakes.
"""
from typing import Any, Dict, Optional, Protocol

from app.infrastructure.database.models import Token, TokenType, User
from app.schemas.auth import AuthTokens


class TokenStore(Protocol):
    """Persisted tokens, looked up and consumed by type."""

    async def find_token(self, token: str, token_type: TokenType, blacklisted: bool = False) -> Optional[Token]:
        ...

    async def verify_token(self, token: str, token_type: TokenType) -> Token:
        """Return the stored token or raise if it is invalid, expired or of another type."""
        ...

    async def delete_token(self, token_doc: Token) -> None:
        ...

    async def delete_tokens(self, user_id: int, token_type: TokenType) -> None:
        ...

    async def generate_auth_tokens(self, user: User) -> AuthTokens:
        ...


class UserDirectory(Protocol):
    """User lookup and mutation."""

    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    async def update_user_by_id(self, user_id: int, fields: Dict[str, Any]) -> User:
        ...


class UnitOfWork(Protocol):
    """Transaction boundary; an AsyncSession satisfies it as-is."""

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
