"""Collaboration router: CRUD, membership, invites, versions, fork/merge, comments and insights.

Read endpoints accept anonymous viewers (private collaborations are refused by the
service layer); every mutating endpoint requires a bearer token.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from memestack import oauth2
from memestack.core.database import get_db
from memestack.modules.collaboration import schemas
from memestack.modules.collaboration.models import CollaborationStatus, CollaborationType
from memestack.modules.users.models import User
from memestack.services.collaboration import CollaborationService

router = APIRouter(prefix="/collaborations", tags=["Collaborations"])


def get_collaboration_service(db: Session = Depends(get_db)) -> CollaborationService:
    """Endpoint: get_collaboration_service."""
    return CollaborationService(db)


# ==========================================
# Listings
# ==========================================


@router.get("/", response_model=schemas.CollaborationPage)
def list_collaborations(
    type: Optional[CollaborationType] = Query(None),
    status_filter: Optional[CollaborationStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    sort: str = Query("recent", pattern="^(recent|popular|active)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """List public collaborations with filtering, search and pagination."""
    return service.list_collaborations(
        type=type,
        status=status_filter,
        search=search,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.get("/trending", response_model=List[schemas.CollaborationSummary])
def get_trending_collaborations(
    limit: Optional[int] = Query(None, ge=1, le=50),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.get_trending(limit=limit)


@router.get("/user/collaborations", response_model=List[schemas.CollaborationSummary])
def get_user_collaborations(
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Collaborations the caller owns or collaborates on."""
    return service.get_user_collaborations(current_user=current_user)


@router.get("/user/invites", response_model=List[schemas.InviteOut])
def get_pending_invites(
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.get_pending_invites(current_user=current_user)


@router.get("/meme/{meme_id}/remixes", response_model=List[schemas.CollaborationSummary])
def get_meme_remixes(
    meme_id: int,
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.get_meme_remixes(meme_id)


# ==========================================
# Collaboration CRUD
# ==========================================


@router.post(
    "/", status_code=status.HTTP_201_CREATED, response_model=schemas.CollaborationOut
)
def create_collaboration(
    payload: schemas.CollaborationCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Create a new collaboration in draft status."""
    return service.create_collaboration(current_user=current_user, payload=payload)


@router.get("/{collaboration_id}", response_model=schemas.CollaborationDetail)
def get_collaboration(
    collaboration_id: int,
    current_user: Optional[User] = Depends(oauth2.get_optional_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Fetch a collaboration with viewer-relative fields; counts a view."""
    return service.get_collaboration(collaboration_id, viewer=current_user)


@router.put("/{collaboration_id}", response_model=schemas.CollaborationOut)
def update_collaboration(
    collaboration_id: int,
    payload: schemas.CollaborationUpdate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.update_collaboration(
        collaboration_id, current_user=current_user, payload=payload
    )


@router.delete("/{collaboration_id}", response_model=schemas.SuccessMessage)
def delete_collaboration(
    collaboration_id: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    service.delete_collaboration(collaboration_id, current_user=current_user)
    return {"message": "Collaboration deleted"}


# ==========================================
# Membership & Invites
# ==========================================


@router.post("/{collaboration_id}/join", response_model=schemas.SuccessMessage)
def join_collaboration(
    collaboration_id: int,
    payload: Optional[schemas.JoinRequest] = Body(None),
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    service.join_collaboration(
        collaboration_id,
        current_user=current_user,
        message=payload.message if payload else None,
    )
    return {"message": "Joined collaboration"}


@router.post(
    "/{collaboration_id}/invite",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.InviteOut,
)
def invite_user(
    collaboration_id: int,
    payload: schemas.InviteCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.invite_user(
        collaboration_id, current_user=current_user, payload=payload
    )


@router.post("/{collaboration_id}/invites/accept", response_model=schemas.SuccessMessage)
def accept_invite(
    collaboration_id: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    service.accept_invite(collaboration_id, current_user=current_user)
    return {"message": "Invite accepted"}


@router.post("/{collaboration_id}/invites/decline", response_model=schemas.SuccessMessage)
def decline_invite(
    collaboration_id: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    service.decline_invite(collaboration_id, current_user=current_user)
    return {"message": "Invite declined"}


@router.delete(
    "/{collaboration_id}/collaborators/{user_id}",
    response_model=schemas.SuccessMessage,
)
def remove_collaborator(
    collaboration_id: int,
    user_id: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    service.remove_collaborator(
        collaboration_id, current_user=current_user, user_id=user_id
    )
    return {"message": "Collaborator removed"}


@router.put(
    "/{collaboration_id}/collaborators/{user_id}/role",
    response_model=schemas.CollaboratorOut,
)
def update_collaborator_role(
    collaboration_id: int,
    user_id: int,
    payload: schemas.RoleUpdate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.update_collaborator_role(
        collaboration_id, current_user=current_user, user_id=user_id, role=payload.role
    )


# ==========================================
# Versions
# ==========================================


@router.post(
    "/{collaboration_id}/versions",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.VersionOut,
)
def create_version(
    collaboration_id: int,
    payload: schemas.VersionCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.create_version(
        collaboration_id, current_user=current_user, payload=payload
    )


@router.post(
    "/{collaboration_id}/versions/{version_number}/approve",
    response_model=schemas.VersionOut,
)
def approve_version(
    collaboration_id: int,
    version_number: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.approve_version(
        collaboration_id, current_user=current_user, version_number=version_number
    )


@router.post(
    "/{collaboration_id}/versions/{version_number}/current",
    response_model=schemas.VersionOut,
)
def set_current_version(
    collaboration_id: int,
    version_number: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.set_current_version(
        collaboration_id, current_user=current_user, version_number=version_number
    )


# ==========================================
# Fork & Merge
# ==========================================


@router.post(
    "/{collaboration_id}/fork",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.CollaborationOut,
)
def fork_collaboration(
    collaboration_id: int,
    payload: Optional[schemas.ForkRequest] = Body(None),
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.fork_collaboration(
        collaboration_id,
        current_user=current_user,
        title=payload.title if payload else None,
    )


@router.post("/{collaboration_id}/merge-fork", response_model=schemas.MergeSummary)
def merge_fork(
    collaboration_id: int,
    options: schemas.MergeOptions,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    """Copy versions, comments and/or collaborators from a fork into its parent."""
    return service.merge_from_fork(
        collaboration_id, current_user=current_user, options=options
    )


# ==========================================
# Comments
# ==========================================


@router.post(
    "/{collaboration_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.CommentOut,
)
def add_comment(
    collaboration_id: int,
    payload: schemas.CommentCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.add_comment(
        collaboration_id, current_user=current_user, payload=payload
    )


@router.post(
    "/{collaboration_id}/comments/{comment_id}/replies",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.ReplyOut,
)
def reply_to_comment(
    collaboration_id: int,
    comment_id: int,
    payload: schemas.ReplyCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.reply_to_comment(
        collaboration_id,
        current_user=current_user,
        comment_id=comment_id,
        payload=payload,
    )


# ==========================================
# Insights, Activity & Stats
# ==========================================


@router.get("/{collaboration_id}/insights")
def get_collaboration_insights(
    collaboration_id: int,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.get_insights(collaboration_id, viewer=current_user)


@router.get("/{collaboration_id}/activity", response_model=schemas.ActivityFeed)
def get_collaboration_activity(
    collaboration_id: int,
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: Optional[User] = Depends(oauth2.get_optional_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    activities, total = service.get_activity_feed(
        collaboration_id, viewer=current_user, limit=limit
    )
    return {"activities": activities, "total_count": total}


@router.get("/{collaboration_id}/stats")
def get_collaboration_stats(
    collaboration_id: int,
    current_user: Optional[User] = Depends(oauth2.get_optional_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.get_collaboration_stats(collaboration_id, viewer=current_user)


@router.post("/{collaboration_id}/track-activity", response_model=schemas.ActivityScore)
def track_activity(
    collaboration_id: int,
    payload: schemas.ActivityTrack,
    current_user: User = Depends(oauth2.get_current_user),
    service: CollaborationService = Depends(get_collaboration_service),
):
    return service.track_activity(
        collaboration_id, current_user=current_user, action=payload.action
    )
