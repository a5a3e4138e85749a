"""Community domain SQLAlchemy models: groups and their memberships."""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql.sqltypes import TIMESTAMP

from memestack.core.database import Base
from memestack.core.db_defaults import timestamp_default


class GroupRole(str, enum.Enum):
    OWNER = "owner"
    MODERATOR = "moderator"
    MEMBER = "member"


class Group(Base):
    """User-created group owning a membership list."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_private = Column(Boolean, default=False)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    members = relationship(
        "GroupMember", back_populates="group", cascade="all, delete-orphan"
    )

    def is_member(self, user_id: int) -> bool:
        if self.owner_id == user_id:
            return True
        return any(member.user_id == user_id for member in self.members)


class GroupMember(Base):
    """Membership association between users and groups."""

    __tablename__ = "group_members"

    group_id = Column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role = Column(
        SAEnum(GroupRole, name="group_role_enum"),
        nullable=False,
        default=GroupRole.MEMBER,
    )
    joined_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    group = relationship("Group", back_populates="members")
    user = relationship("User")


__all__ = ["Group", "GroupMember", "GroupRole"]
