"""Collaboration domain models.

A collaboration is an aggregate: the root row owns its collaborators, pending
invites, versions, comments (with replies) and merge records. Child rows are
only ever written through the root's relationships, and every mutation touches
the root row so the `revision` counter guards the whole unit of work.
"""

from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from memestack.core.database import Base
from memestack.core.db_defaults import utcnow

from . import permissions
from .permissions import ParticipantRole


class CollaborationType(str, enum.Enum):
    REMIX = "remix"
    COLLABORATION = "collaboration"
    TEMPLATE_CREATION = "template_creation"
    CHALLENGE_RESPONSE = "challenge_response"


class CollaborationStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CollaboratorRole(str, enum.Enum):
    CONTRIBUTOR = "contributor"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    ADMIN = "admin"


class Collaboration(Base):
    """Aggregate root for a multi-user editing session over a meme."""

    __tablename__ = "collaborations"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)
    type = Column(
        SAEnum(CollaborationType, name="collaboration_type_enum"), nullable=False
    )
    status = Column(
        SAEnum(CollaborationStatus, name="collaboration_status_enum"),
        nullable=False,
        default=CollaborationStatus.DRAFT,
    )

    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    original_meme_id = Column(
        Integer, ForeignKey("memes.id", ondelete="SET NULL"), nullable=True
    )
    parent_collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="SET NULL"), nullable=True
    )
    challenge_id = Column(
        Integer, ForeignKey("challenges.id", ondelete="SET NULL"), nullable=True
    )
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    # settings
    is_public = Column(Boolean, nullable=False, default=True)
    allow_forks = Column(Boolean, nullable=False, default=True)
    require_approval = Column(Boolean, nullable=False, default=False)
    max_collaborators = Column(Integer, nullable=False, default=10)
    deadline = Column(DateTime(timezone=True), nullable=True)
    allow_anonymous = Column(Boolean, nullable=False, default=False)

    # stats: caches of child counts, rewritten by refresh_stats()
    total_versions = Column(Integer, nullable=False, default=0)
    total_contributors = Column(Integer, nullable=False, default=1)
    total_comments = Column(Integer, nullable=False, default=0)
    total_views = Column(Integer, nullable=False, default=0)
    total_likes = Column(Integer, nullable=False, default=0)
    total_forks = Column(Integer, nullable=False, default=0)
    completion_rate = Column(Float, nullable=False, default=0.0)

    revision = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __mapper_args__ = {"version_id_col": revision}
    __table_args__ = (
        Index("ix_collaborations_owner_status", "owner_id", "status"),
        Index("ix_collaborations_type_status", "type", "status"),
        Index("ix_collaborations_original_meme", "original_meme_id"),
        Index("ix_collaborations_parent", "parent_collaboration_id"),
    )

    owner = relationship("User", foreign_keys=[owner_id])
    original_meme = relationship("Meme", foreign_keys=[original_meme_id])
    challenge = relationship("Challenge")
    group = relationship("Group")
    parent = relationship(
        "Collaboration", remote_side=[id], foreign_keys=[parent_collaboration_id]
    )

    collaborators = relationship(
        "Collaborator",
        back_populates="collaboration",
        foreign_keys="Collaborator.collaboration_id",
        cascade="all, delete-orphan",
        order_by="Collaborator.id",
    )
    pending_invites = relationship(
        "PendingInvite",
        back_populates="collaboration",
        cascade="all, delete-orphan",
        order_by="PendingInvite.id",
    )
    versions = relationship(
        "CollaborationVersion",
        back_populates="collaboration",
        foreign_keys="CollaborationVersion.collaboration_id",
        cascade="all, delete-orphan",
        order_by="CollaborationVersion.version",
    )
    comments = relationship(
        "CollaborationComment",
        back_populates="collaboration",
        foreign_keys="CollaborationComment.collaboration_id",
        cascade="all, delete-orphan",
        order_by="CollaborationComment.id",
    )
    merge_history = relationship(
        "MergeRecord",
        back_populates="collaboration",
        foreign_keys="MergeRecord.collaboration_id",
        cascade="all, delete-orphan",
        order_by="MergeRecord.id",
    )

    # --- role resolution ---------------------------------------------------
    def get_user_role(self, user_id: Optional[int]) -> Optional[ParticipantRole]:
        return permissions.resolve_role(self, user_id)

    def is_owner(self, user_id: Optional[int]) -> bool:
        return user_id is not None and self.owner_id == user_id

    def is_collaborator(self, user_id: Optional[int]) -> bool:
        """Owner counts as a collaborator; so does anyone on the list."""
        return self.get_user_role(user_id) is not None

    def can_edit(self, user_id: Optional[int]) -> bool:
        return permissions.can_edit(self, user_id)

    def can_create_version(self, user_id: Optional[int]) -> bool:
        return permissions.can_create_version(self, user_id)

    def can_invite(self, user_id: Optional[int]) -> bool:
        return permissions.can_invite(self, user_id)

    def can_manage(self, user_id: Optional[int]) -> bool:
        return permissions.can_manage(self, user_id)

    def can_approve(self, user_id: Optional[int]) -> bool:
        return permissions.can_approve(self, user_id)

    def find_collaborator(self, user_id: int) -> Optional["Collaborator"]:
        return next((c for c in self.collaborators if c.user_id == user_id), None)

    def find_invite(self, user_id: int) -> Optional["PendingInvite"]:
        return next((i for i in self.pending_invites if i.user_id == user_id), None)

    def find_version(self, number: int) -> Optional["CollaborationVersion"]:
        return next((v for v in self.versions if v.version == number), None)

    def find_comment(self, comment_id: int) -> Optional["CollaborationComment"]:
        return next((c for c in self.comments if c.id == comment_id), None)

    # --- derived state -----------------------------------------------------
    @property
    def current_version(self) -> Optional["CollaborationVersion"]:
        if not self.versions:
            return None
        return next((v for v in self.versions if v.is_current), self.versions[-1])

    @property
    def next_version_number(self) -> int:
        return max((v.version for v in self.versions), default=0) + 1

    @property
    def settings(self) -> dict:
        return {
            "is_public": self.is_public,
            "allow_forks": self.allow_forks,
            "require_approval": self.require_approval,
            "max_collaborators": self.max_collaborators,
            "deadline": self.deadline,
            "allow_anonymous": self.allow_anonymous,
        }

    @property
    def stats(self) -> dict:
        return {
            "total_versions": self.total_versions,
            "total_contributors": self.total_contributors,
            "total_comments": self.total_comments,
            "total_views": self.total_views,
            "total_likes": self.total_likes,
            "total_forks": self.total_forks,
            "completion_rate": self.completion_rate,
        }

    def refresh_stats(self) -> None:
        """Re-derive the cached counters from the child collections."""
        self.total_versions = len(self.versions)
        self.total_contributors = len(self.collaborators) + 1  # +1 for owner
        self.total_comments = len(self.comments)

    def touch(self) -> None:
        """Mark the root dirty so the revision check covers child-only changes."""
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"Collaboration(id={self.id}, title={self.title!r}, status={self.status})"


class Collaborator(Base):
    """A non-owner participant and their role on a collaboration."""

    __tablename__ = "collaboration_collaborators"

    id = Column(Integer, primary_key=True, index=True)
    collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        SAEnum(CollaboratorRole, name="collaborator_role_enum"),
        nullable=False,
        default=CollaboratorRole.CONTRIBUTOR,
    )
    permissions = Column(JSON, nullable=False, default=list)
    contribution_score = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_active = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    merged_from_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("collaboration_id", "user_id", name="uq_collaborator_user"),
    )

    collaboration = relationship(
        "Collaboration", back_populates="collaborators", foreign_keys=[collaboration_id]
    )
    user = relationship("User")


class PendingInvite(Base):
    """Outstanding invitation; consumed on accept/decline, pruned on expiry."""

    __tablename__ = "collaboration_invites"

    id = Column(Integer, primary_key=True, index=True)
    collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    invited_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(
        SAEnum(CollaboratorRole, name="collaborator_role_enum"),
        nullable=False,
        default=CollaboratorRole.CONTRIBUTOR,
    )
    message = Column(String(300), nullable=True)
    invited_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("collaboration_id", "user_id", name="uq_invite_user"),
    )

    collaboration = relationship("Collaboration", back_populates="pending_invites")
    user = relationship("User", foreign_keys=[user_id])
    invited_by = relationship("User", foreign_keys=[invited_by_id])


class CollaborationVersion(Base):
    """Numbered snapshot of the meme being worked on."""

    __tablename__ = "collaboration_versions"

    id = Column(Integer, primary_key=True, index=True)
    collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="CASCADE"), nullable=False
    )
    version = Column(Integer, nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    meme_id = Column(Integer, ForeignKey("memes.id", ondelete="SET NULL"), nullable=True)
    changes = Column(JSON, nullable=False, default=list)
    approved = Column(Boolean, nullable=False, default=False)
    approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    merged_from_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("collaboration_id", "version", name="uq_collaboration_version"),
    )

    collaboration = relationship(
        "Collaboration", back_populates="versions", foreign_keys=[collaboration_id]
    )
    created_by = relationship("User", foreign_keys=[created_by_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    meme = relationship("Meme")


class CollaborationComment(Base):
    """Immutable discussion entry, optionally pinned to a version or element."""

    __tablename__ = "collaboration_comments"

    id = Column(Integer, primary_key=True, index=True)
    collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(500), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version_number = Column(Integer, nullable=True)
    element_id = Column(String(50), nullable=True)
    merged_from_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="SET NULL"), nullable=True
    )

    collaboration = relationship(
        "Collaboration", back_populates="comments", foreign_keys=[collaboration_id]
    )
    user = relationship("User")
    replies = relationship(
        "CommentReply",
        back_populates="comment",
        cascade="all, delete-orphan",
        order_by="CommentReply.id",
    )


class CommentReply(Base):
    """Single level of threading under a comment."""

    __tablename__ = "collaboration_comment_replies"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(
        Integer,
        ForeignKey("collaboration_comments.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(300), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    comment = relationship("CollaborationComment", back_populates="replies")
    user = relationship("User")


class MergeRecord(Base):
    """Provenance entry written each time a fork is merged back."""

    __tablename__ = "collaboration_merges"

    id = Column(Integer, primary_key=True, index=True)
    collaboration_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="CASCADE"), nullable=False
    )
    from_fork_id = Column(
        Integer, ForeignKey("collaborations.id", ondelete="SET NULL"), nullable=True
    )
    merged_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    merged_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    merge_data = Column(JSON, nullable=False, default=dict)

    collaboration = relationship(
        "Collaboration", back_populates="merge_history", foreign_keys=[collaboration_id]
    )
    merged_by = relationship("User")


__all__ = [
    "CollaborationType",
    "CollaborationStatus",
    "CollaboratorRole",
    "Collaboration",
    "Collaborator",
    "PendingInvite",
    "CollaborationVersion",
    "CollaborationComment",
    "CommentReply",
    "MergeRecord",
]
