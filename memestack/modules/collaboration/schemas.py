"""Pydantic schemas for the collaboration API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from memestack.modules.users.schemas import UserBrief

from .models import CollaborationStatus, CollaborationType, CollaboratorRole
from .scoring import ActivityKind


# ==================== Settings ====================


class CollaborationSettings(BaseModel):
    is_public: bool = True
    allow_forks: bool = True
    require_approval: bool = False
    max_collaborators: int = Field(10, ge=2, le=50)
    deadline: Optional[datetime] = None
    allow_anonymous: bool = False

    model_config = ConfigDict(from_attributes=True)


class CollaborationSettingsUpdate(BaseModel):
    is_public: Optional[bool] = None
    allow_forks: Optional[bool] = None
    require_approval: Optional[bool] = None
    max_collaborators: Optional[int] = Field(None, ge=2, le=50)
    deadline: Optional[datetime] = None
    allow_anonymous: Optional[bool] = None


# ==================== Change records ====================


class _ChangeBase(BaseModel):
    description: str = Field(..., min_length=1, max_length=300)
    timestamp: Optional[datetime] = None


class TextEdit(_ChangeBase):
    type: Literal["text_edit"] = "text_edit"
    element_id: str = Field(..., max_length=50)
    previous_text: Optional[str] = None
    new_text: str


class ImageEdit(_ChangeBase):
    type: Literal["image_edit"] = "image_edit"
    previous_image_url: Optional[str] = None
    new_image_url: str


class ElementAdd(_ChangeBase):
    type: Literal["element_add"] = "element_add"
    element_id: str = Field(..., max_length=50)
    element_type: str
    properties: Dict[str, Any] = Field(default_factory=dict)


class ElementRemove(_ChangeBase):
    type: Literal["element_remove"] = "element_remove"
    element_id: str = Field(..., max_length=50)


class StyleChange(_ChangeBase):
    type: Literal["style_change"] = "style_change"
    element_id: str = Field(..., max_length=50)
    property: str
    previous_value: Optional[Any] = None
    new_value: Any


ChangeRecord = Annotated[
    Union[TextEdit, ImageEdit, ElementAdd, ElementRemove, StyleChange],
    Field(discriminator="type"),
]


# ==================== Requests ====================


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Lower-case, strip and de-duplicate tags, keeping first-seen order."""
    seen: List[str] = []
    for tag in tags or []:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def clean_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) < 3:
        raise ValueError("Title must be between 3 and 200 characters")
    return value


class CollaborationCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    type: CollaborationType
    original_meme_id: Optional[int] = None
    challenge_id: Optional[int] = None
    group_id: Optional[int] = None
    settings: Optional[CollaborationSettings] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return clean_title(value)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        return normalize_tags(value)


class CollaborationUpdate(BaseModel):
    """Partial update.

    Ownership, membership, versions and stats are not part of this model, so
    attempts to send them are dropped during parsing.
    """

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    type: Optional[CollaborationType] = None
    status: Optional[CollaborationStatus] = None
    settings: Optional[CollaborationSettingsUpdate] = None
    tags: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: Optional[str]) -> Optional[str]:
        return clean_title(value)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return None if value is None else normalize_tags(value)


class JoinRequest(BaseModel):
    message: Optional[str] = Field(None, max_length=300)


class InviteCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    role: CollaboratorRole = CollaboratorRole.CONTRIBUTOR
    message: Optional[str] = Field(None, max_length=300)

    @field_validator("role")
    @classmethod
    def _no_admin_invites(cls, value: CollaboratorRole) -> CollaboratorRole:
        if value == CollaboratorRole.ADMIN:
            raise ValueError("Invalid role")
        return value


class VersionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    meme_id: int
    description: Optional[str] = Field(None, max_length=500)
    changes: List[ChangeRecord] = Field(default_factory=list)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    version_number: Optional[int] = Field(None, ge=1)
    element_id: Optional[str] = Field(None, max_length=50)


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=300)


class ForkRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: Optional[str]) -> Optional[str]:
        return clean_title(value)


class RoleUpdate(BaseModel):
    role: CollaboratorRole


class MergeOptions(BaseModel):
    fork_id: int
    merge_versions: bool = True
    merge_comments: bool = False
    merge_collaborators: bool = False


class ActivityTrack(BaseModel):
    action: ActivityKind = ActivityKind.OTHER


# ==================== Responses ====================


class CollaboratorOut(BaseModel):
    user: UserBrief
    role: CollaboratorRole
    permissions: List[str] = []
    contribution_score: int
    joined_at: datetime
    last_active: datetime
    merged_from_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class InviteOut(BaseModel):
    id: int
    collaboration_id: int
    user: UserBrief
    invited_by: UserBrief
    role: CollaboratorRole
    message: Optional[str] = None
    invited_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VersionOut(BaseModel):
    id: int
    version: int
    title: str
    description: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    meme_id: Optional[int] = None
    changes: List[Dict[str, Any]] = []
    approved: bool
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    is_current: bool
    merged_from_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ReplyOut(BaseModel):
    id: int
    user: UserBrief
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentOut(BaseModel):
    id: int
    user: UserBrief
    content: str
    created_at: datetime
    version_number: Optional[int] = None
    element_id: Optional[str] = None
    merged_from_id: Optional[int] = None
    replies: List[ReplyOut] = []

    model_config = ConfigDict(from_attributes=True)


class CollaborationStats(BaseModel):
    total_versions: int
    total_contributors: int
    total_comments: int
    total_views: int
    total_likes: int
    total_forks: int
    completion_rate: float


class MergeRecordOut(BaseModel):
    id: int
    from_fork_id: Optional[int] = None
    merged_by_id: Optional[int] = None
    merged_at: datetime
    merge_data: Dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)


class CollaborationSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    type: CollaborationType
    status: CollaborationStatus
    owner: UserBrief
    original_meme_id: Optional[int] = None
    parent_collaboration_id: Optional[int] = None
    challenge_id: Optional[int] = None
    group_id: Optional[int] = None
    tags: List[str] = []
    settings: CollaborationSettings
    stats: CollaborationStats
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CollaborationOut(CollaborationSummary):
    collaborators: List[CollaboratorOut] = []
    versions: List[VersionOut] = []
    comments: List[CommentOut] = []
    merge_history: List[MergeRecordOut] = []


class CollaborationDetail(CollaborationOut):
    """Detail view with viewer-relative fields."""

    user_role: Optional[str] = None
    is_collaborator: bool = False


class CollaborationPage(BaseModel):
    items: List[CollaborationSummary]
    total: int
    page: int
    limit: int
    total_pages: int


class MergeSummary(BaseModel):
    fork_id: int
    versions_merged: int = 0
    comments_merged: int = 0
    collaborators_merged: int = 0
    collaborators_skipped: int = 0
    first_version_number: Optional[int] = None


class ActivityEntry(BaseModel):
    type: str
    user: Optional[UserBrief] = None
    timestamp: datetime
    data: Dict[str, Any] = {}


class ActivityScore(BaseModel):
    action: ActivityKind
    points: int
    contribution_score: int


class SuccessMessage(BaseModel):
    success: bool = True
    message: str


class ActivityFeed(BaseModel):
    activities: List[ActivityEntry]
    total_count: int
