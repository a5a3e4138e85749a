from .models import (
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
from .permissions import ParticipantRole
from .scoring import ACTIVITY_POINTS, ActivityKind
from .schemas import (
    CollaborationCreate,
    CollaborationDetail,
    CollaborationOut,
    CollaborationUpdate,
    MergeOptions,
    MergeSummary,
    VersionCreate,
)

__all__ = [
    "Collaboration",
    "CollaborationComment",
    "CollaborationStatus",
    "CollaborationType",
    "CollaborationVersion",
    "Collaborator",
    "CollaboratorRole",
    "CommentReply",
    "MergeRecord",
    "PendingInvite",
    "ParticipantRole",
    "ActivityKind",
    "ACTIVITY_POINTS",
    "CollaborationCreate",
    "CollaborationDetail",
    "CollaborationOut",
    "CollaborationUpdate",
    "MergeOptions",
    "MergeSummary",
    "VersionCreate",
]
