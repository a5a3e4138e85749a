"""Read-side insight helpers for collaborations.

Everything here is computed from the loaded aggregate on each call; nothing is
cached or persisted. `compute_insights` takes an optional `now` so tests can
pin the clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from statistics import mean
from typing import TYPE_CHECKING, Dict, Optional

from memestack.core.db_defaults import as_utc, utcnow

from .models import CollaborationStatus

if TYPE_CHECKING:  # pragma: no cover
    from .models import Collaboration

RECENT_WINDOW = timedelta(days=7)

COMPLETION_BY_STATUS = {
    CollaborationStatus.DRAFT: 0.0,
    CollaborationStatus.ACTIVE: 25.0,
    CollaborationStatus.REVIEWING: 75.0,
    CollaborationStatus.COMPLETED: 100.0,
    CollaborationStatus.CANCELLED: 0.0,
}

APPROVED_VERSION_QUALITY = 10
PENDING_VERSION_QUALITY = 5


def completion_for(status: CollaborationStatus) -> float:
    return COMPLETION_BY_STATUS.get(CollaborationStatus(status), 0.0)


@dataclass(frozen=True)
class EngagementMetrics:
    versions_per_day: float
    comments_per_day: float
    collaborator_growth: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "versions_per_day": self.versions_per_day,
            "comments_per_day": self.comments_per_day,
            "collaborator_growth": self.collaborator_growth,
        }


@dataclass(frozen=True)
class QualityMetrics:
    average_version_quality: float
    collaborator_retention: float
    completion_score: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "average_version_quality": self.average_version_quality,
            "collaborator_retention": self.collaborator_retention,
            "completion_score": self.completion_score,
        }


@dataclass(frozen=True)
class ActivityFlags:
    is_hot: bool
    is_trending: bool
    needs_attention: bool
    is_successful: bool

    def to_dict(self) -> Dict[str, bool]:
        return {
            "is_hot": self.is_hot,
            "is_trending": self.is_trending,
            "needs_attention": self.needs_attention,
            "is_successful": self.is_successful,
        }


@dataclass(frozen=True)
class CollaborationInsights:
    """Point-in-time summary of how a collaboration is doing."""

    collaboration_id: int
    age_days: int
    engagement: EngagementMetrics
    quality: QualityMetrics
    flags: ActivityFlags

    def to_dict(self) -> Dict[str, object]:
        """Serialise the insights for API responses."""

        return {
            "collaboration_id": self.collaboration_id,
            "age_days": self.age_days,
            "engagement": self.engagement.to_dict(),
            "quality": self.quality.to_dict(),
            "flags": self.flags.to_dict(),
        }


def _age_days(created_at: datetime, now: datetime) -> int:
    """Whole days since creation, floored at one so rates never divide by zero."""
    elapsed = now - as_utc(created_at)
    return max(1, elapsed.days)


def compute_insights(
    collaboration: "Collaboration", now: Optional[datetime] = None
) -> CollaborationInsights:
    now = now or utcnow()
    created_at = as_utc(collaboration.created_at)
    days = _age_days(created_at, now)
    window_start = now - RECENT_WINDOW

    versions = list(collaboration.versions)
    comments = list(collaboration.comments)
    collaborators = list(collaboration.collaborators)

    engagement = EngagementMetrics(
        versions_per_day=round(len(versions) / days, 4),
        comments_per_day=round(len(comments) / days, 4),
        collaborator_growth=round(len(collaborators) / days, 4),
    )

    if versions:
        average_quality = round(
            mean(
                APPROVED_VERSION_QUALITY if v.approved else PENDING_VERSION_QUALITY
                for v in versions
            ),
            4,
        )
    else:
        average_quality = 0.0

    if collaborators:
        active = sum(1 for c in collaborators if as_utc(c.last_active) >= window_start)
        retention = round(active / len(collaborators), 4)
    else:
        retention = 0.0

    quality = QualityMetrics(
        average_version_quality=average_quality,
        collaborator_retention=retention,
        completion_score=completion_for(collaboration.status),
    )

    recent_versions = sum(1 for v in versions if as_utc(v.created_at) >= window_start)
    flags = ActivityFlags(
        is_hot=recent_versions > 5,
        is_trending=len(collaborators) > 3 and (collaboration.total_views or 0) > 100,
        needs_attention=(now - created_at) > RECENT_WINDOW and not versions,
        is_successful=(
            collaboration.status == CollaborationStatus.COMPLETED
            and (collaboration.total_forks or 0) >= 1
        ),
    )

    return CollaborationInsights(
        collaboration_id=collaboration.id,
        age_days=days,
        engagement=engagement,
        quality=quality,
        flags=flags,
    )


__all__ = [
    "COMPLETION_BY_STATUS",
    "completion_for",
    "EngagementMetrics",
    "QualityMetrics",
    "ActivityFlags",
    "CollaborationInsights",
    "compute_insights",
]
