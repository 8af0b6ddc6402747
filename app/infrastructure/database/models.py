# app/infrastructure/database/models.py

import enum
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.infrastructure.database.base import Base
from app.core.security import verify_password


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    RESET_PASSWORD = "resetPassword"
    VERIFY_EMAIL = "verifyEmail"


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]), default=UserRole.USER, nullable=False)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    tokens: Mapped[list["Token"]] = relationship("Token", back_populates="user", cascade="all, delete-orphan")

    async def is_password_match(self, password: str) -> bool:
        """Checks a candidate password against the stored bcrypt hash."""
        return await verify_password(password, self.hashed_password)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class Token(Base):
    __tablename__ = 'tokens'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    token: Mapped[str] = mapped_column(String(512), unique=True, nullable=False, index=True)
    type: Mapped[TokenType] = mapped_column(Enum(TokenType, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    expires: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    blacklisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    user: Mapped["User"] = relationship("User", back_populates="tokens")

    def __repr__(self) -> str:
        return f"<Token(id={self.id}, user_id={self.user_id}, type='{self.type.value}', blacklisted={self.blacklisted})>"

    __table_args__ = (
        sa.Index('ix_tokens_user_type', 'user_id', 'type'),
        sa.Index('ix_tokens_token_type_blacklisted', 'token', 'type', 'blacklisted'),
    )
