# app/services/user_service.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import bad_request, not_found
from app.core.security import get_password_hash
from app.infrastructure.database.models import User, UserRole
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)

# Columns a caller may change through update_user_by_id. `password` is
# accepted as well and stored hashed.
UPDATABLE_FIELDS = {"name", "email", "role", "is_email_verified"}


class SqlUserDirectory:
    """
    User persistence over an AsyncSession. Mutations only flush; the caller
    owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_email_taken(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        query = select(User.id).filter(User.email == email)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        return (await self.db.execute(query)).first() is not None

    async def create_user(self, data: UserCreate) -> User:
        logger.debug(f"Attempting to create user: {data.email}")
        if await self.is_email_taken(data.email):
            logger.warning(f"Registration conflict: email {data.email} already registered.")
            raise bad_request("Email already taken")

        user = User(
            name=data.name,
            email=data.email,
            hashed_password=await get_password_hash(data.password),
            role=UserRole.USER,
            is_email_verified=False,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info(f"User {user.email} created with ID: {user.id}")
        return user

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return (await self.db.execute(select(User).filter(User.id == user_id))).scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return (await self.db.execute(select(User).filter(User.email == email))).scalar_one_or_none()

    async def update_user_by_id(self, user_id: int, fields: Dict[str, Any]) -> User:
        """
        Applies `fields` to the user. Raises `not_found` for an unknown ID and
        `bad_request` when the new email belongs to someone else.
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            logger.warning(f"Update failed: user {user_id} not found.")
            raise not_found("User not found")

        updates = dict(fields)
        unknown = set(updates) - UPDATABLE_FIELDS - {"password"}
        if unknown:
            raise bad_request(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        if "email" in updates and await self.is_email_taken(updates["email"], exclude_user_id=user_id):
            raise bad_request("Email already taken")

        if "password" in updates:
            user.hashed_password = await get_password_hash(updates.pop("password"))

        for field, value in updates.items():
            setattr(user, field, value)
        user.updated_at = datetime.now(timezone.utc)

        await self.db.flush()
        logger.info(f"User {user_id} updated: {', '.join(sorted(fields))}")
        return user
