import logging
import sys

import pytest

from app.core.logging_config import configure_logging
from app.core.security import get_password_hash, verify_password


@pytest.mark.asyncio
async def test_password_hash_round_trip():
    hashed = await get_password_hash("password1")

    assert await verify_password("password1", hashed)
    assert not await verify_password("password2", hashed)


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["a1" * 36 + "x", "é" * 37])
async def test_password_hash_refuses_secrets_bcrypt_would_truncate(password):
    with pytest.raises(ValueError):
        await get_password_hash(password)


def test_configure_logging_quiets_libraries():
    configure_logging()

    stdout_handlers = [
        h for h in logging.getLogger().handlers
        if isinstance(h, logging.StreamHandler) and h.stream is sys.stdout
    ]
    assert len(stdout_handlers) == 1
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("passlib").level == logging.ERROR
