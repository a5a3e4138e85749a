"""SQLAlchemy models and enums for the users domain."""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.sql.sqltypes import TIMESTAMP

from memestack.core.database import Base
from memestack.core.db_defaults import as_utc, timestamp_default, utcnow


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class User(Base):
    """Application user model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, nullable=False)
    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String, nullable=False, unique=True)
    hashed_password = Column(String, nullable=False)
    display_name = Column(String(60), nullable=True)
    avatar_url = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    role = Column(
        SQLAlchemyEnum(UserRole, name="user_role_enum"),
        nullable=False,
        default=UserRole.USER,
    )
    is_banned = Column(Boolean, nullable=False, default=False)
    suspended_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    @property
    def is_suspended(self) -> bool:
        """True while a temporary suspension is still running."""
        until = as_utc(self.suspended_until)
        return until is not None and until > utcnow()

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username!r})"


__all__ = ["User", "UserRole"]
