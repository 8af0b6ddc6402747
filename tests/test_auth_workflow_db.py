"""AuthService over the SQL stores, with the session as unit of work."""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from app.core.exceptions import unauthorized
from app.infrastructure.database.models import Token, TokenType, User
from app.services.auth_service import AuthService
from app.services.token_service import SqlTokenStore
from app.services.user_service import SqlUserDirectory


@pytest.fixture
def service(token_store, user_directory, db_session):
    return AuthService(token_store, user_directory, unit_of_work=db_session)


async def count_tokens(session_factory, user_id, token_type):
    async with session_factory() as session:
        rows = await session.execute(select(Token).filter(Token.user_id == user_id, Token.type == token_type))
        return len(rows.scalars().all())


@pytest.mark.asyncio
async def test_refresh_auth_commits_rotation(service, token_store, registered_user, db_session, session_factory):
    tokens = await token_store.generate_auth_tokens(registered_user)
    await db_session.commit()

    result = await service.refresh_auth(tokens.refresh.token)

    assert result.user.id == registered_user.id
    assert result.tokens.refresh.token != tokens.refresh.token
    assert await count_tokens(session_factory, registered_user.id, TokenType.REFRESH) == 1

    with pytest.raises(unauthorized):
        await service.refresh_auth(tokens.refresh.token)


@pytest.mark.asyncio
async def test_reset_password_is_atomic(service, token_store, user_directory, registered_user, db_session, session_factory):
    user_id = registered_user.id
    first = await token_store.generate_reset_password_token(registered_user)
    await token_store.generate_reset_password_token(registered_user)
    await db_session.commit()

    user_directory.update_user_by_id = AsyncMock(side_effect=RuntimeError("write failed"))
    with pytest.raises(unauthorized):
        await service.reset_password(first, "new-password9")

    # The bulk token delete was rolled back together with the failed update
    assert await count_tokens(session_factory, user_id, TokenType.RESET_PASSWORD) == 2


@pytest.mark.asyncio
async def test_reset_password_persists_new_credential(service, token_store, registered_user, db_session, session_factory):
    value = await token_store.generate_reset_password_token(registered_user)
    await token_store.generate_reset_password_token(registered_user)
    await db_session.commit()

    await service.reset_password(value, "new-password9")

    assert await count_tokens(session_factory, registered_user.id, TokenType.RESET_PASSWORD) == 0
    async with session_factory() as session:
        fresh = AuthService(SqlTokenStore(session), SqlUserDirectory(session))
        user = await fresh.login_user_with_email_and_password("ada@example.com", "new-password9")
        assert user.id == registered_user.id
        with pytest.raises(unauthorized):
            await fresh.login_user_with_email_and_password("ada@example.com", "password1")


@pytest.mark.asyncio
async def test_verify_email_persists_flag(service, token_store, registered_user, db_session, session_factory):
    value = await token_store.generate_verify_email_token(registered_user)
    await token_store.generate_verify_email_token(registered_user)
    await db_session.commit()

    user = await service.verify_email(value)

    assert user.is_email_verified is True
    assert await count_tokens(session_factory, registered_user.id, TokenType.VERIFY_EMAIL) == 0
    async with session_factory() as session:
        stored = (await session.execute(select(User).filter(User.id == registered_user.id))).scalar_one()
        assert stored.is_email_verified is True


@pytest.mark.asyncio
async def test_reset_password_refuses_overlong_password(service, token_store, registered_user, db_session, session_factory):
    user_id = registered_user.id
    value = await token_store.generate_reset_password_token(registered_user)
    await db_session.commit()

    with pytest.raises(unauthorized) as exc_info:
        await service.reset_password(value, "a1" * 36 + "SECRET-TAIL")
    assert exc_info.value.message == "Password reset failed"

    assert await count_tokens(session_factory, user_id, TokenType.RESET_PASSWORD) == 1
    async with session_factory() as session:
        fresh = AuthService(SqlTokenStore(session), SqlUserDirectory(session))
        assert await fresh.login_user_with_email_and_password("ada@example.com", "password1")
