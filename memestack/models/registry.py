"""Aggregated model registry.

Importing this module registers every domain table on `Base.metadata`; Alembic
and the test suite import it for schema discovery.
"""

from memestack.modules.users.models import User, UserRole
from memestack.modules.content.models import Challenge, ChallengeStatus, Meme
from memestack.modules.community.models import Group, GroupMember, GroupRole
from memestack.modules.collaboration.models import (
    Collaboration,
    CollaborationComment,
    CollaborationStatus,
    CollaborationType,
    CollaborationVersion,
    Collaborator,
    CollaboratorRole,
    CommentReply,
    MergeRecord,
    PendingInvite,
)

__all__ = [
    "User",
    "UserRole",
    "Meme",
    "Challenge",
    "ChallengeStatus",
    "Group",
    "GroupMember",
    "GroupRole",
    "Collaboration",
    "CollaborationType",
    "CollaborationStatus",
    "Collaborator",
    "CollaboratorRole",
    "PendingInvite",
    "CollaborationVersion",
    "CollaborationComment",
    "CommentReply",
    "MergeRecord",
]
