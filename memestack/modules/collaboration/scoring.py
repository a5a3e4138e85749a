"""Contribution-score weights.

Every path that rewards activity (versions, comments, invites, approvals and
the explicit activity tracker) reads its points from `ACTIVITY_POINTS`.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional

from memestack.core.db_defaults import utcnow

if TYPE_CHECKING:  # pragma: no cover
    from .models import Collaboration


class ActivityKind(str, enum.Enum):
    VERSION_CREATED = "version_created"
    COMMENT_ADDED = "comment_added"
    INVITE_SENT = "invite_sent"
    VERSION_APPROVED = "version_approved"
    OTHER = "other"


ACTIVITY_POINTS = {
    ActivityKind.VERSION_CREATED: 10,
    ActivityKind.COMMENT_ADDED: 5,
    ActivityKind.INVITE_SENT: 10,
    ActivityKind.VERSION_APPROVED: 8,
    ActivityKind.OTHER: 1,
}


def points_for(kind: ActivityKind) -> int:
    return ACTIVITY_POINTS.get(kind, ACTIVITY_POINTS[ActivityKind.OTHER])


def award(
    collaboration: "Collaboration", user_id: int, kind: ActivityKind
) -> Optional[int]:
    """Add the activity weight to a listed collaborator's score.

    Returns the new score, or None when `user_id` has no collaborator row
    (the owner included).
    """
    collaborator = collaboration.find_collaborator(user_id)
    if collaborator is None:
        return None
    collaborator.contribution_score = (collaborator.contribution_score or 0) + points_for(kind)
    collaborator.last_active = utcnow()
    return collaborator.contribution_score


__all__ = ["ActivityKind", "ACTIVITY_POINTS", "points_for", "award"]
