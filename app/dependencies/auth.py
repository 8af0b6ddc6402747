# app/dependencies/auth.py

import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import unauthorized, APIException
from app.core.security import decode_token, TokenPayload
from app.infrastructure.database.models import TokenType, User
from app.infrastructure.database.session import get_db
from app.services.auth_service import AuthService
from app.services.token_service import SqlTokenStore
from app.services.user_service import SqlUserDirectory

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_store(db: Annotated[AsyncSession, Depends(get_db)]) -> SqlTokenStore:
    return SqlTokenStore(db)


def get_user_directory(db: Annotated[AsyncSession, Depends(get_db)]) -> SqlUserDirectory:
    return SqlUserDirectory(db)


def get_auth_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    tokens: Annotated[SqlTokenStore, Depends(get_token_store)],
    users: Annotated[SqlUserDirectory, Depends(get_user_directory)],
) -> AuthService:
    """
    AuthService bound to the request's session; the session doubles as the
    unit of work so each operation commits atomically.
    """
    return AuthService(tokens, users, unit_of_work=db)


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    users: Annotated[SqlUserDirectory, Depends(get_user_directory)],
) -> User:
    """
    Resolves the user from a bearer access token.
    """
    credentials_exception = unauthorized("Please authenticate")

    if not token or not token.credentials:
        logger.warning("No token or invalid credentials provided")
        raise credentials_exception

    try:
        payload: TokenPayload = decode_token(token.credentials)
    except APIException as e:
        logger.warning(f"Access token rejected: {e.message}")
        raise credentials_exception

    if payload.type != TokenType.ACCESS.value:
        logger.warning(f"Token of type '{payload.type}' presented as access token")
        raise credentials_exception

    try:
        user_id = int(payload.sub)
    except ValueError:
        logger.warning("Access token subject is not a user ID")
        raise credentials_exception

    user = await users.get_user_by_id(user_id)
    if not user:
        logger.warning(f"Access token refers to missing user {user_id}")
        raise credentials_exception

    return user
