"""Collaboration domain business logic: membership, invites, versions, fork/merge and insights.

Every mutating method loads the aggregate, validates the request completely,
applies the change through the root's relationships, touches the root row and
commits once. The `revision` column turns a lost update into
`ConcurrentModificationException` instead of a silent overwrite.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import String, cast, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from memestack.core.config import settings
from memestack.core.db_defaults import as_utc, utcnow
from memestack.core.exceptions import (
    ConcurrentModificationException,
    InvalidStateException,
    MaxLimitExceededException,
    PermissionDeniedException,
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
    ValidationException,
)
from memestack.modules.collaboration.insights import completion_for, compute_insights
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
from memestack.modules.collaboration.permissions import permission_tags
from memestack.modules.collaboration.schemas import (
    ActivityScore,
    CollaborationCreate,
    CollaborationDetail,
    CollaborationOut,
    CollaborationPage,
    CollaborationSettings,
    CollaborationSummary,
    CollaborationUpdate,
    CommentCreate,
    InviteCreate,
    MergeOptions,
    MergeSummary,
    ReplyCreate,
    VersionCreate,
)
from memestack.modules.collaboration.scoring import ActivityKind, award, points_for
from memestack.modules.users.models import User
from memestack.modules.users.schemas import UserBrief
from memestack.services.content import ContentService
from memestack.services.users import UserService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    CollaborationStatus.DRAFT: {CollaborationStatus.ACTIVE, CollaborationStatus.CANCELLED},
    CollaborationStatus.ACTIVE: {
        CollaborationStatus.REVIEWING,
        CollaborationStatus.COMPLETED,
        CollaborationStatus.CANCELLED,
    },
    CollaborationStatus.REVIEWING: {
        CollaborationStatus.ACTIVE,
        CollaborationStatus.COMPLETED,
        CollaborationStatus.CANCELLED,
    },
    CollaborationStatus.COMPLETED: set(),
    CollaborationStatus.CANCELLED: set(),
}

SORT_ORDERS = {
    "recent": (desc(Collaboration.created_at),),
    "popular": (desc(Collaboration.total_contributors), desc(Collaboration.total_views)),
    "active": (desc(Collaboration.updated_at),),
}

TITLE_MAX_LENGTH = 200
FEED_PREVIEW_LENGTH = 100


def _is_expired(invite: PendingInvite, now=None) -> bool:
    return as_utc(invite.expires_at) <= (now or utcnow())


def _brief(user: Optional[User]) -> Optional[UserBrief]:
    return UserBrief.model_validate(user) if user is not None else None


class CollaborationService:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserService(db)
        self.content = ContentService(db)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _get(self, collaboration_id: int) -> Collaboration:
        collaboration = self.db.get(Collaboration, collaboration_id)
        if collaboration is None:
            raise ResourceNotFoundException("Collaboration", collaboration_id)
        return collaboration

    def _commit(self, collaboration: Collaboration, action: str, actor_id: Optional[int]):
        """Touch the aggregate root and commit the unit of work."""
        collaboration.touch()
        collaboration_id = collaboration.id
        try:
            self.db.commit()
        except (StaleDataError, IntegrityError) as exc:
            self.db.rollback()
            logger.warning(
                f"Lost update on collaboration {collaboration_id} during {action}: {exc}",
                extra={
                    "collaboration_id": collaboration_id,
                    "actor_id": actor_id,
                    "action": action,
                },
            )
            raise ConcurrentModificationException("Collaboration", collaboration_id)
        logger.info(
            f"Collaboration {collaboration_id}: {action}",
            extra={
                "collaboration_id": collaboration_id,
                "actor_id": actor_id,
                "action": action,
            },
        )

    def _deny(
        self, collaboration: Collaboration, actor_id: Optional[int], action: str, message: str
    ):
        logger.warning(
            f"Rejected {action} on collaboration {collaboration.id}: {message}",
            extra={
                "collaboration_id": collaboration.id,
                "actor_id": actor_id,
                "action": action,
            },
        )
        raise PermissionDeniedException(message)

    def _ensure_visible(
        self, collaboration: Collaboration, viewer_id: Optional[int], action: str = "view"
    ) -> None:
        if not collaboration.is_public and not collaboration.is_collaborator(viewer_id):
            self._deny(collaboration, viewer_id, action, "This collaboration is private")

    def _ensure_can_add(self, collaboration: Collaboration, user_id: int) -> None:
        if collaboration.is_collaborator(user_id):
            raise ResourceAlreadyExistsException("Collaborator", "user_id")
        if len(collaboration.collaborators) >= collaboration.max_collaborators:
            raise MaxLimitExceededException(
                "collaborators", collaboration.max_collaborators
            )

    def _add_collaborator(
        self,
        collaboration: Collaboration,
        user_id: int,
        role: CollaboratorRole,
        *,
        contribution_score: int = 0,
        merged_from_id: Optional[int] = None,
    ) -> Collaborator:
        self._ensure_can_add(collaboration, user_id)
        # A collaborator never keeps a pending invite on the same collaboration.
        invite = collaboration.find_invite(user_id)
        if invite is not None:
            collaboration.pending_invites.remove(invite)
        now = utcnow()
        collaborator = Collaborator(
            user_id=user_id,
            role=role,
            permissions=permission_tags(role),
            contribution_score=contribution_score,
            joined_at=now,
            last_active=now,
            merged_from_id=merged_from_id,
        )
        collaboration.collaborators.append(collaborator)
        collaboration.refresh_stats()
        return collaborator

    def _prune_expired_invites(
        self, collaboration: Collaboration, *, keep_user_id: Optional[int] = None
    ) -> int:
        now = utcnow()
        expired = [
            invite
            for invite in collaboration.pending_invites
            if invite.user_id != keep_user_id and _is_expired(invite, now)
        ]
        for invite in expired:
            collaboration.pending_invites.remove(invite)
        return len(expired)

    # ------------------------------------------------------------------
    # Creation, reads and listings
    # ------------------------------------------------------------------
    def create_collaboration(
        self, *, current_user: User, payload: CollaborationCreate
    ) -> Collaboration:
        if payload.original_meme_id is not None:
            self.content.get_meme(payload.original_meme_id)
        if payload.challenge_id is not None:
            self.content.get_challenge(payload.challenge_id)
        elif payload.type == CollaborationType.CHALLENGE_RESPONSE:
            raise ValidationException(
                "Challenge responses must reference a challenge", field="challenge_id"
            )
        if payload.group_id is not None and not self.content.is_group_member(
            payload.group_id, current_user.id
        ):
            logger.warning(
                f"User {current_user.id} tried to create a collaboration in group {payload.group_id}",
                extra={"actor_id": current_user.id, "action": "create"},
            )
            raise PermissionDeniedException(
                "You must be a member of the group to create a collaboration in it"
            )

        collab_settings = payload.settings or CollaborationSettings(
            max_collaborators=settings.DEFAULT_MAX_COLLABORATORS
        )
        now = utcnow()
        collaboration = Collaboration(
            title=payload.title,
            description=payload.description,
            type=payload.type,
            status=CollaborationStatus.DRAFT,
            owner_id=current_user.id,
            original_meme_id=payload.original_meme_id,
            challenge_id=payload.challenge_id,
            group_id=payload.group_id,
            tags=list(payload.tags),
            completion_rate=completion_for(CollaborationStatus.DRAFT),
            created_at=now,
            updated_at=now,
            **collab_settings.model_dump(),
        )
        self.db.add(collaboration)
        self.db.flush()
        self._commit(collaboration, "create", current_user.id)
        self.db.refresh(collaboration)
        return collaboration

    def get_collaboration(
        self, collaboration_id: int, *, viewer: Optional[User] = None
    ) -> CollaborationDetail:
        """Return the detail view and count the view.

        The counter is bumped with a single UPDATE so concurrent readers never
        contend on the revision check.
        """
        collaboration = self._get(collaboration_id)
        viewer_id = viewer.id if viewer else None
        self._ensure_visible(collaboration, viewer_id)

        self.db.query(Collaboration).filter(Collaboration.id == collaboration_id).update(
            {Collaboration.total_views: Collaboration.total_views + 1},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(collaboration)

        role = collaboration.get_user_role(viewer_id)
        # Validated through CollaborationOut: the ORM row has an is_collaborator() method.
        out = CollaborationOut.model_validate(collaboration)
        return CollaborationDetail(
            **out.model_dump(),
            user_role=role.value if role else None,
            is_collaborator=role is not None,
        )

    def list_collaborations(
        self,
        *,
        type: Optional[CollaborationType] = None,
        status: Optional[CollaborationStatus] = None,
        search: Optional[str] = None,
        sort: str = "recent",
        page: int = 1,
        limit: int = 12,
    ) -> CollaborationPage:
        query = self.db.query(Collaboration).filter(Collaboration.is_public.is_(True))
        if type is not None:
            query = query.filter(Collaboration.type == type)
        if status is not None:
            query = query.filter(Collaboration.status == status)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Collaboration.title.ilike(term),
                    Collaboration.description.ilike(term),
                    cast(Collaboration.tags, String).ilike(term),
                )
            )

        total = query.count()
        order = SORT_ORDERS.get(sort, SORT_ORDERS["recent"])
        items = (
            query.order_by(*order, desc(Collaboration.id))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return CollaborationPage(
            items=[CollaborationSummary.model_validate(item) for item in items],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )

    def get_trending(self, *, limit: Optional[int] = None) -> List[Collaboration]:
        return (
            self.db.query(Collaboration)
            .filter(
                Collaboration.is_public.is_(True),
                Collaboration.status.in_(
                    [CollaborationStatus.ACTIVE, CollaborationStatus.REVIEWING]
                ),
            )
            .order_by(
                desc(Collaboration.total_contributors),
                desc(Collaboration.total_views),
                desc(Collaboration.id),
            )
            .limit(limit or settings.TRENDING_LIMIT)
            .all()
        )

    def get_user_collaborations(self, *, current_user: User) -> List[Collaboration]:
        return (
            self.db.query(Collaboration)
            .filter(
                or_(
                    Collaboration.owner_id == current_user.id,
                    Collaboration.collaborators.any(
                        Collaborator.user_id == current_user.id
                    ),
                )
            )
            .order_by(desc(Collaboration.updated_at), desc(Collaboration.id))
            .all()
        )

    def get_pending_invites(self, *, current_user: User) -> List[PendingInvite]:
        now = utcnow()
        invites = (
            self.db.query(PendingInvite)
            .filter(PendingInvite.user_id == current_user.id)
            .order_by(desc(PendingInvite.invited_at))
            .all()
        )
        return [invite for invite in invites if not _is_expired(invite, now)]

    def get_meme_remixes(self, meme_id: int) -> List[Collaboration]:
        self.content.get_meme(meme_id)
        return (
            self.db.query(Collaboration)
            .filter(
                Collaboration.original_meme_id == meme_id,
                Collaboration.type == CollaborationType.REMIX,
                Collaboration.is_public.is_(True),
            )
            .order_by(desc(Collaboration.created_at), desc(Collaboration.id))
            .all()
        )

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------
    def update_collaboration(
        self, collaboration_id: int, *, current_user: User, payload: CollaborationUpdate
    ) -> Collaboration:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_manage(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "update",
                "Only the owner or an admin can update this collaboration",
            )

        data = payload.model_dump(exclude_unset=True)
        new_status = data.pop("status", None)
        settings_update = data.pop("settings", None) or {}

        new_type = data.get("type") or collaboration.type
        if (
            new_type == CollaborationType.CHALLENGE_RESPONSE
            and collaboration.challenge_id is None
        ):
            raise ValidationException(
                "Challenge responses must reference a challenge", field="challenge_id"
            )

        if new_status is not None and new_status != collaboration.status:
            current = CollaborationStatus(collaboration.status)
            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStateException(
                    f"Cannot move a collaboration from {current.value} to {new_status.value}",
                    details={"from": current.value, "to": new_status.value},
                )

        max_collaborators = settings_update.get("max_collaborators")
        if max_collaborators is not None and max_collaborators < len(
            collaboration.collaborators
        ):
            raise InvalidStateException(
                "Max collaborators cannot be lower than the current collaborator count",
                details={"collaborators": len(collaboration.collaborators)},
            )

        if new_status is not None:
            collaboration.status = new_status
            collaboration.completion_rate = completion_for(new_status)
        for field, value in data.items():
            if value is not None or field == "description":
                setattr(collaboration, field, value)
        for field, value in settings_update.items():
            if value is not None or field == "deadline":
                setattr(collaboration, field, value)

        self._commit(collaboration, "update", current_user.id)
        self.db.refresh(collaboration)
        return collaboration

    def delete_collaboration(self, collaboration_id: int, *, current_user: User) -> None:
        collaboration = self._get(collaboration_id)
        if not collaboration.is_owner(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "delete",
                "Only the owner can delete this collaboration",
            )
        if collaboration.collaborators:
            raise InvalidStateException(
                "Cannot delete a collaboration that still has collaborators",
                details={"collaborators": len(collaboration.collaborators)},
            )

        collaboration_id = collaboration.id
        self.db.delete(collaboration)
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrentModificationException("Collaboration", collaboration_id)
        logger.info(
            f"Collaboration {collaboration_id}: delete",
            extra={
                "collaboration_id": collaboration_id,
                "actor_id": current_user.id,
                "action": "delete",
            },
        )

    # ------------------------------------------------------------------
    # Membership and invites
    # ------------------------------------------------------------------
    def join_collaboration(
        self, collaboration_id: int, *, current_user: User, message: Optional[str] = None
    ) -> Collaborator:
        collaboration = self._get(collaboration_id)
        if collaboration.status != CollaborationStatus.ACTIVE:
            raise InvalidStateException(
                "Only active collaborations can be joined",
                details={"status": CollaborationStatus(collaboration.status).value},
            )
        if collaboration.is_collaborator(current_user.id):
            raise ResourceAlreadyExistsException("Collaborator", "user_id")

        invite = collaboration.find_invite(current_user.id)
        if invite is not None and _is_expired(invite):
            invite = None
        if invite is None and collaboration.require_approval:
            self._deny(
                collaboration,
                current_user.id,
                "join",
                "This collaboration requires an invitation to join",
            )

        role = invite.role if invite is not None else CollaboratorRole.CONTRIBUTOR
        collaborator = self._add_collaborator(collaboration, current_user.id, role)
        if message:
            logger.info(
                f"User {current_user.id} attached a join message ({len(message)} chars)",
                extra={
                    "collaboration_id": collaboration.id,
                    "actor_id": current_user.id,
                    "action": "join",
                },
            )
        self._commit(collaboration, "join", current_user.id)
        return collaborator

    def invite_user(
        self, collaboration_id: int, *, current_user: User, payload: InviteCreate
    ) -> PendingInvite:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_invite(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "invite",
                "You don't have permission to invite users to this collaboration",
            )

        target = self.users.get_by_username(payload.username)
        if collaboration.is_collaborator(target.id):
            raise ResourceAlreadyExistsException("Collaborator", "username")

        existing = collaboration.find_invite(target.id)
        if existing is not None and not _is_expired(existing):
            raise ResourceAlreadyExistsException("Invite", "username")

        self._prune_expired_invites(collaboration, keep_user_id=target.id)
        now = utcnow()
        expires_at = now + timedelta(days=settings.INVITE_EXPIRY_DAYS)
        if existing is not None:
            # Re-invite after expiry reuses the row to keep (collaboration, user) unique.
            existing.invited_by_id = current_user.id
            existing.role = payload.role
            existing.message = payload.message
            existing.invited_at = now
            existing.expires_at = expires_at
            invite = existing
        else:
            invite = PendingInvite(
                user_id=target.id,
                invited_by_id=current_user.id,
                role=payload.role,
                message=payload.message,
                invited_at=now,
                expires_at=expires_at,
            )
            collaboration.pending_invites.append(invite)

        award(collaboration, current_user.id, ActivityKind.INVITE_SENT)
        self._commit(collaboration, "invite", current_user.id)
        self.db.refresh(invite)
        return invite

    def accept_invite(self, collaboration_id: int, *, current_user: User) -> Collaborator:
        collaboration = self._get(collaboration_id)
        invite = collaboration.find_invite(current_user.id)
        if invite is None:
            raise ResourceNotFoundException("Invite", collaboration_id)

        if _is_expired(invite):
            collaboration.pending_invites.remove(invite)
            self._commit(collaboration, "prune_expired_invite", current_user.id)
            raise InvalidStateException("This invite has expired")

        collaborator = self._add_collaborator(collaboration, current_user.id, invite.role)
        self._commit(collaboration, "accept_invite", current_user.id)
        return collaborator

    def decline_invite(self, collaboration_id: int, *, current_user: User) -> None:
        collaboration = self._get(collaboration_id)
        invite = collaboration.find_invite(current_user.id)
        if invite is None:
            raise ResourceNotFoundException("Invite", collaboration_id)
        collaboration.pending_invites.remove(invite)
        self._commit(collaboration, "decline_invite", current_user.id)

    def remove_collaborator(
        self, collaboration_id: int, *, current_user: User, user_id: int
    ) -> None:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_manage(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "remove_collaborator",
                "Only the owner or an admin can remove collaborators",
            )
        collaborator = collaboration.find_collaborator(user_id)
        if collaborator is None:
            raise ResourceNotFoundException("Collaborator", user_id)

        collaboration.collaborators.remove(collaborator)
        collaboration.refresh_stats()
        self._commit(collaboration, "remove_collaborator", current_user.id)

    def update_collaborator_role(
        self,
        collaboration_id: int,
        *,
        current_user: User,
        user_id: int,
        role: CollaboratorRole,
    ) -> Collaborator:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_manage(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "update_role",
                "Only the owner or an admin can change collaborator roles",
            )
        if role == CollaboratorRole.ADMIN and not collaboration.is_owner(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "update_role",
                "Only the owner can grant the admin role",
            )
        collaborator = collaboration.find_collaborator(user_id)
        if collaborator is None:
            raise ResourceNotFoundException("Collaborator", user_id)

        collaborator.role = role
        collaborator.permissions = permission_tags(role)
        self._commit(collaboration, "update_role", current_user.id)
        return collaborator

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------
    def create_version(
        self, collaboration_id: int, *, current_user: User, payload: VersionCreate
    ) -> CollaborationVersion:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_create_version(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "create_version",
                "You don't have permission to create versions in this collaboration",
            )
        self.content.get_meme(payload.meme_id)

        now = utcnow()
        changes = []
        for change in payload.changes:
            record = change.model_dump(mode="json")
            record["timestamp"] = record.get("timestamp") or now.isoformat()
            changes.append(record)

        for existing in collaboration.versions:
            existing.is_current = False
        version = CollaborationVersion(
            version=len(collaboration.versions) + 1,
            title=payload.title,
            description=payload.description,
            created_by_id=current_user.id,
            created_at=now,
            meme_id=payload.meme_id,
            changes=changes,
            approved=not collaboration.require_approval,
            is_current=True,
        )
        collaboration.versions.append(version)
        collaboration.refresh_stats()
        award(collaboration, current_user.id, ActivityKind.VERSION_CREATED)
        self._commit(collaboration, "create_version", current_user.id)
        self.db.refresh(version)
        return version

    def approve_version(
        self, collaboration_id: int, *, current_user: User, version_number: int
    ) -> CollaborationVersion:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_approve(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "approve_version",
                "You don't have permission to approve versions",
            )
        version = collaboration.find_version(version_number)
        if version is None:
            raise ResourceNotFoundException("Version", version_number)
        if version.approved:
            raise InvalidStateException(
                "This version is already approved", details={"version": version_number}
            )

        version.approved = True
        version.approved_by_id = current_user.id
        version.approved_at = utcnow()
        award(collaboration, current_user.id, ActivityKind.VERSION_APPROVED)
        self._commit(collaboration, "approve_version", current_user.id)
        return version

    def set_current_version(
        self, collaboration_id: int, *, current_user: User, version_number: int
    ) -> CollaborationVersion:
        collaboration = self._get(collaboration_id)
        if not collaboration.can_edit(current_user.id):
            self._deny(
                collaboration,
                current_user.id,
                "set_current_version",
                "You don't have permission to change the current version",
            )
        target = collaboration.find_version(version_number)
        if target is None:
            raise ResourceNotFoundException("Version", version_number)

        for version in collaboration.versions:
            version.is_current = version is target
        self._commit(collaboration, "set_current_version", current_user.id)
        return target

    # ------------------------------------------------------------------
    # Fork & merge
    # ------------------------------------------------------------------
    def fork_collaboration(
        self, collaboration_id: int, *, current_user: User, title: Optional[str] = None
    ) -> Collaboration:
        source = self._get(collaboration_id)
        self._ensure_visible(source, current_user.id, "fork")
        if not source.allow_forks:
            logger.warning(
                f"Fork refused on collaboration {source.id}: forking disabled",
                extra={
                    "collaboration_id": source.id,
                    "actor_id": current_user.id,
                    "action": "fork",
                },
            )
            raise InvalidStateException("Forking is disabled for this collaboration")

        now = utcnow()
        fork = Collaboration(
            title=title or f"Fork of {source.title}"[:TITLE_MAX_LENGTH],
            description=f"Forked from: {source.title}",
            type=source.type,
            status=CollaborationStatus.ACTIVE,
            owner_id=current_user.id,
            original_meme_id=source.original_meme_id,
            parent_collaboration_id=source.id,
            challenge_id=source.challenge_id,
            group_id=source.group_id,
            tags=list(source.tags or []),
            is_public=source.is_public,
            allow_forks=source.allow_forks,
            require_approval=source.require_approval,
            max_collaborators=min(
                source.max_collaborators, settings.FORK_MAX_COLLABORATORS
            ),
            deadline=source.deadline,
            allow_anonymous=source.allow_anonymous,
            total_contributors=1,
            completion_rate=completion_for(CollaborationStatus.ACTIVE),
            created_at=now,
            updated_at=now,
        )
        self.db.add(fork)
        self.db.flush()

        # Re-derived from the children so retries and races cannot drift it.
        source.total_forks = (
            self.db.query(func.count(Collaboration.id))
            .filter(Collaboration.parent_collaboration_id == source.id)
            .scalar()
        )
        self._commit(source, "fork", current_user.id)
        self.db.refresh(fork)
        return fork

    def merge_from_fork(
        self, collaboration_id: int, *, current_user: User, options: MergeOptions
    ) -> MergeSummary:
        """Copy selected records from a direct fork back into this collaboration.

        The fork is left untouched, so merging the same fork twice copies its
        records twice.
        """
        parent = self._get(collaboration_id)
        if not parent.can_manage(current_user.id):
            self._deny(
                parent,
                current_user.id,
                "merge",
                "Only the owner or an admin can merge forks",
            )
        fork = self._get(options.fork_id)
        if fork.parent_collaboration_id != parent.id:
            raise InvalidStateException(
                "Can only merge from a direct fork of this collaboration",
                details={"fork_id": fork.id, "parent_id": fork.parent_collaboration_id},
            )

        summary = MergeSummary(fork_id=fork.id)
        version_map: Dict[int, int] = {}

        if options.merge_versions and fork.versions:
            next_number = len(parent.versions) + 1
            summary.first_version_number = next_number
            merged: List[CollaborationVersion] = []
            for source_version in fork.versions:
                copy = CollaborationVersion(
                    version=next_number,
                    title=source_version.title,
                    description=source_version.description,
                    created_by_id=source_version.created_by_id,
                    created_at=source_version.created_at,
                    meme_id=source_version.meme_id,
                    changes=list(source_version.changes or []),
                    approved=source_version.approved,
                    approved_by_id=source_version.approved_by_id,
                    approved_at=source_version.approved_at,
                    is_current=False,
                    merged_from_id=fork.id,
                )
                version_map[source_version.version] = next_number
                merged.append(copy)
                next_number += 1
            for existing in parent.versions:
                existing.is_current = False
            merged[-1].is_current = True
            parent.versions.extend(merged)
            summary.versions_merged = len(merged)

        if options.merge_comments:
            for comment in fork.comments:
                parent.comments.append(
                    CollaborationComment(
                        user_id=comment.user_id,
                        content=comment.content,
                        created_at=comment.created_at,
                        version_number=version_map.get(comment.version_number),
                        element_id=comment.element_id,
                        merged_from_id=fork.id,
                        replies=[
                            CommentReply(
                                user_id=reply.user_id,
                                content=reply.content,
                                created_at=reply.created_at,
                            )
                            for reply in comment.replies
                        ],
                    )
                )
                summary.comments_merged += 1

        if options.merge_collaborators:
            for collaborator in fork.collaborators:
                if parent.is_collaborator(collaborator.user_id):
                    continue
                if len(parent.collaborators) >= parent.max_collaborators:
                    summary.collaborators_skipped += 1
                    continue
                role = CollaboratorRole(collaborator.role)
                if role == CollaboratorRole.ADMIN:
                    # Admin is only ever granted by the parent's owner.
                    role = CollaboratorRole.EDITOR
                self._add_collaborator(
                    parent,
                    collaborator.user_id,
                    role,
                    contribution_score=(collaborator.contribution_score or 0) // 2,
                    merged_from_id=fork.id,
                )
                summary.collaborators_merged += 1

        parent.refresh_stats()
        parent.merge_history.append(
            MergeRecord(
                from_fork_id=fork.id,
                merged_by_id=current_user.id,
                merged_at=utcnow(),
                merge_data={
                    "options": options.model_dump(exclude={"fork_id"}),
                    "summary": summary.model_dump(),
                },
            )
        )
        self._commit(parent, "merge", current_user.id)
        return summary

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    def add_comment(
        self, collaboration_id: int, *, current_user: User, payload: CommentCreate
    ) -> CollaborationComment:
        collaboration = self._get(collaboration_id)
        self._ensure_visible(collaboration, current_user.id, "comment")
        if (
            payload.version_number is not None
            and collaboration.find_version(payload.version_number) is None
        ):
            raise ResourceNotFoundException("Version", payload.version_number)

        comment = CollaborationComment(
            user_id=current_user.id,
            content=payload.content,
            created_at=utcnow(),
            version_number=payload.version_number,
            element_id=payload.element_id,
        )
        collaboration.comments.append(comment)
        collaboration.refresh_stats()
        award(collaboration, current_user.id, ActivityKind.COMMENT_ADDED)
        self._commit(collaboration, "comment", current_user.id)
        self.db.refresh(comment)
        return comment

    def reply_to_comment(
        self,
        collaboration_id: int,
        *,
        current_user: User,
        comment_id: int,
        payload: ReplyCreate,
    ) -> CommentReply:
        collaboration = self._get(collaboration_id)
        self._ensure_visible(collaboration, current_user.id, "reply")
        comment = collaboration.find_comment(comment_id)
        if comment is None:
            raise ResourceNotFoundException("Comment", comment_id)

        reply = CommentReply(
            user_id=current_user.id, content=payload.content, created_at=utcnow()
        )
        comment.replies.append(reply)
        self._commit(collaboration, "reply", current_user.id)
        self.db.refresh(reply)
        return reply

    # ------------------------------------------------------------------
    # Insights, activity and stats
    # ------------------------------------------------------------------
    def get_insights(self, collaboration_id: int, *, viewer: Optional[User]) -> dict:
        collaboration = self._get(collaboration_id)
        self._ensure_visible(collaboration, viewer.id if viewer else None, "insights")
        return compute_insights(collaboration).to_dict()

    def get_activity_feed(
        self,
        collaboration_id: int,
        *,
        viewer: Optional[User] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[dict], int]:
        collaboration = self._get(collaboration_id)
        self._ensure_visible(collaboration, viewer.id if viewer else None, "activity")

        activities = []
        for version in collaboration.versions:
            activities.append(
                {
                    "type": ActivityKind.VERSION_CREATED.value,
                    "user": _brief(version.created_by),
                    "timestamp": as_utc(version.created_at),
                    "data": {
                        "version_number": version.version,
                        "title": version.title,
                        "description": version.description,
                    },
                }
            )
        for comment in collaboration.comments:
            content = comment.content
            if len(content) > FEED_PREVIEW_LENGTH:
                content = content[:FEED_PREVIEW_LENGTH] + "..."
            activities.append(
                {
                    "type": ActivityKind.COMMENT_ADDED.value,
                    "user": _brief(comment.user),
                    "timestamp": as_utc(comment.created_at),
                    "data": {"content": content, "version_number": comment.version_number},
                }
            )
        for collaborator in collaboration.collaborators:
            activities.append(
                {
                    "type": "user_joined",
                    "user": _brief(collaborator.user),
                    "timestamp": as_utc(collaborator.joined_at),
                    "data": {"role": CollaboratorRole(collaborator.role).value},
                }
            )

        activities.sort(key=lambda entry: entry["timestamp"], reverse=True)
        limit = limit or settings.ACTIVITY_FEED_LIMIT
        return activities[:limit], len(activities)

    def get_collaboration_stats(
        self, collaboration_id: int, *, viewer: Optional[User] = None
    ) -> dict:
        collaboration = self._get(collaboration_id)
        self._ensure_visible(collaboration, viewer.id if viewer else None, "stats")

        now = utcnow()
        versions = collaboration.versions
        comments = collaboration.comments
        collaborators = collaboration.collaborators
        contributors = len(collaborators) + 1
        days_since_creation = (now - as_utc(collaboration.created_at)).days

        return {
            "basic": {
                "total_versions": len(versions),
                "total_comments": len(comments),
                "total_contributors": contributors,
                "total_views": collaboration.total_views,
                "total_forks": collaboration.total_forks,
            },
            "activity": {
                "last_activity": as_utc(collaboration.updated_at),
                "average_versions_per_collaborator": round(len(versions) / contributors, 4),
                "comments_per_version": round(len(comments) / max(len(versions), 1), 4),
                "activity_score": sum(c.contribution_score or 0 for c in collaborators),
            },
            "contributors": [
                {
                    "user": UserBrief.model_validate(c.user).model_dump(),
                    "role": CollaboratorRole(c.role).value,
                    "joined_at": as_utc(c.joined_at),
                    "last_active": as_utc(c.last_active),
                    "contribution_score": c.contribution_score,
                    "versions_created": sum(
                        1 for v in versions if v.created_by_id == c.user_id
                    ),
                    "comments_added": sum(1 for m in comments if m.user_id == c.user_id),
                }
                for c in collaborators
            ],
            "timeline": {
                "created_at": as_utc(collaboration.created_at),
                "days_since_creation": days_since_creation,
                "growth_rate": round(len(collaborators) / max(days_since_creation, 1), 4),
            },
        }

    def track_activity(
        self, collaboration_id: int, *, current_user: User, action: ActivityKind
    ) -> ActivityScore:
        collaboration = self._get(collaboration_id)
        score = award(collaboration, current_user.id, action)
        if score is not None:
            self._commit(collaboration, f"track:{action.value}", current_user.id)
        return ActivityScore(
            action=action, points=points_for(action), contribution_score=score or 0
        )
