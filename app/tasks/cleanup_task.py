import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.token_service import SqlTokenStore

logger = logging.getLogger(__name__)

async def purge_expired_tokens(session_factory: async_sessionmaker[AsyncSession], now: Optional[datetime] = None) -> int:
    """
    Deletes refresh, reset-password and verify-email tokens whose expiry has
    passed. Returns how many rows were removed.
    """
    cutoff = now or datetime.now(timezone.utc)
    logger.info(f"Starting cleanup of tokens expired before {cutoff.isoformat()}...")
    async with session_factory() as session:
        deleted_count = await SqlTokenStore(session).purge_expired_tokens(cutoff)
        await session.commit()
    logger.info(f"Cleanup finished. Deleted {deleted_count} expired tokens.")
    return deleted_count
