"""Content domain SQLAlchemy models.

Only the attributes the collaboration workflow resolves against are modelled
here; uploads and template rendering live in the content service.
"""

from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql.sqltypes import TIMESTAMP

from memestack.core.database import Base
from memestack.core.db_defaults import timestamp_default


class ChallengeStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    VOTING = "voting"
    ENDED = "ended"


class Meme(Base):
    """An uploaded meme image with its metadata."""

    __tablename__ = "memes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    image_url = Column(String, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    creator = relationship("User")


class Challenge(Base):
    """A timed meme contest."""

    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        SAEnum(ChallengeStatus, name="challenge_status_enum"),
        nullable=False,
        default=ChallengeStatus.ACTIVE,
    )
    ends_at = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )


__all__ = ["Meme", "Challenge", "ChallengeStatus"]
