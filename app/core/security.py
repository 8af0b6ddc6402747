# app/core/security.py

import logging
import uuid # For generating JTI
from datetime import datetime, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from app.config import settings
from app.core.exceptions import unauthorized

logger = logging.getLogger(__name__)

# =========================
# Password Hashing
# =========================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

async def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifies a plain password against a hash in a worker thread so bcrypt
    does not block the event loop.
    """
    return await run_in_threadpool(pwd_context.verify, plain_password, hashed_password)

async def get_password_hash(password: str) -> str:
    """
    Hashes a password in a worker thread. bcrypt ignores everything past 72
    bytes, so longer secrets are refused rather than silently truncated.
    """
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password exceeds 72 bytes")
    return await run_in_threadpool(pwd_context.hash, password)

# =========================
# JWT Token Management
# =========================

class TokenPayload(BaseModel):
    """Decoded JWT claims."""
    sub: str # User ID
    type: str
    jti: Optional[str] = None
    iat: Optional[datetime] = None
    exp: Optional[datetime] = None


def create_token(user_id: int, expires: datetime, token_type: str) -> str:
    """
    Signs a JWT for `user_id` of the given type that expires at `expires`.
    A random JTI keeps tokens minted in the same second distinct.
    """
    to_encode = {
        "sub": str(user_id),
        "iat": int(datetime.now(timezone.utc).timestamp()),
        "exp": int(expires.timestamp()),
        "type": token_type,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    """
    Decodes and validates a JWT (signature and expiry).
    Raises `unauthorized` for anything that is not a well-formed, live token.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWTError during token decoding: {e}")
        raise unauthorized("Invalid or expired token.")

    for claim in ("iat", "exp"):
        if isinstance(payload.get(claim), (int, float)):
            payload[claim] = datetime.fromtimestamp(payload[claim], tz=timezone.utc)

    try:
        return TokenPayload(**payload)
    except ValueError as e:
        logger.warning(f"Token payload failed validation: {e}")
        raise unauthorized("Invalid or expired token.")
