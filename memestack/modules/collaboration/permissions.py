"""Role resolution for collaborations.

The owner is not stored in the collaborator list, so every permission check
goes through `resolve_role`, which folds "is owner" and "listed collaborator"
into one participant role.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .models import Collaboration


class ParticipantRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    CONTRIBUTOR = "contributor"


EDIT_ROLES = frozenset(
    {ParticipantRole.OWNER, ParticipantRole.ADMIN, ParticipantRole.EDITOR}
)
VERSION_ROLES = frozenset(
    {
        ParticipantRole.OWNER,
        ParticipantRole.ADMIN,
        ParticipantRole.EDITOR,
        ParticipantRole.CONTRIBUTOR,
    }
)
INVITE_ROLES = EDIT_ROLES
MANAGE_ROLES = frozenset({ParticipantRole.OWNER, ParticipantRole.ADMIN})
APPROVE_ROLES = frozenset(
    {
        ParticipantRole.OWNER,
        ParticipantRole.ADMIN,
        ParticipantRole.EDITOR,
        ParticipantRole.REVIEWER,
    }
)


# Informational tags stored on each collaborator row.
DEFAULT_PERMISSION_TAGS = {
    "contributor": ["create_version", "comment"],
    "editor": ["create_version", "comment", "edit", "invite"],
    "reviewer": ["comment", "approve"],
    "admin": ["create_version", "comment", "edit", "invite", "approve", "manage"],
}


def permission_tags(role) -> list:
    return list(DEFAULT_PERMISSION_TAGS.get(getattr(role, "value", role), []))


def resolve_role(
    collaboration: "Collaboration", user_id: Optional[int]
) -> Optional[ParticipantRole]:
    """Return the participant role of `user_id`, or None when unrelated."""
    if user_id is None:
        return None
    if collaboration.owner_id == user_id:
        return ParticipantRole.OWNER
    for collaborator in collaboration.collaborators:
        if collaborator.user_id == user_id:
            return ParticipantRole(getattr(collaborator.role, "value", collaborator.role))
    return None


def has_role(
    collaboration: "Collaboration", user_id: Optional[int], allowed: frozenset
) -> bool:
    return resolve_role(collaboration, user_id) in allowed


def can_edit(collaboration: "Collaboration", user_id: Optional[int]) -> bool:
    return has_role(collaboration, user_id, EDIT_ROLES)


def can_create_version(collaboration: "Collaboration", user_id: Optional[int]) -> bool:
    return has_role(collaboration, user_id, VERSION_ROLES)


def can_invite(collaboration: "Collaboration", user_id: Optional[int]) -> bool:
    return has_role(collaboration, user_id, INVITE_ROLES)


def can_manage(collaboration: "Collaboration", user_id: Optional[int]) -> bool:
    """Owner or admin: membership changes and settings updates."""
    return has_role(collaboration, user_id, MANAGE_ROLES)


def can_approve(collaboration: "Collaboration", user_id: Optional[int]) -> bool:
    return has_role(collaboration, user_id, APPROVE_ROLES)


__all__ = [
    "ParticipantRole",
    "DEFAULT_PERMISSION_TAGS",
    "permission_tags",
    "resolve_role",
    "has_role",
    "can_edit",
    "can_create_version",
    "can_invite",
    "can_manage",
    "can_approve",
]
