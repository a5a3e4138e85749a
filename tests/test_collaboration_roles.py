import pytest
from pydantic import ValidationError

from memestack.modules.collaboration import schemas
from memestack.modules.collaboration.models import (
    Collaboration,
    Collaborator,
    CollaboratorRole,
)
from memestack.modules.collaboration.permissions import (
    ParticipantRole,
    permission_tags,
    resolve_role,
)
from memestack.modules.collaboration.scoring import (
    ACTIVITY_POINTS,
    ActivityKind,
    award,
    points_for,
)


@pytest.fixture
def collaboration():
    roles = {
        2: CollaboratorRole.ADMIN,
        3: CollaboratorRole.EDITOR,
        4: CollaboratorRole.REVIEWER,
        5: CollaboratorRole.CONTRIBUTOR,
    }
    return Collaboration(
        owner_id=1,
        collaborators=[
            Collaborator(user_id=user_id, role=role, contribution_score=0)
            for user_id, role in roles.items()
        ],
    )


def test_resolve_role(collaboration):
    assert resolve_role(collaboration, 1) == ParticipantRole.OWNER
    assert resolve_role(collaboration, 4) == ParticipantRole.REVIEWER
    assert resolve_role(collaboration, 99) is None
    assert resolve_role(collaboration, None) is None


@pytest.mark.parametrize(
    "check, allowed",
    [
        ("can_edit", {1, 2, 3}),
        ("can_create_version", {1, 2, 3, 5}),
        ("can_invite", {1, 2, 3}),
        ("can_manage", {1, 2}),
        ("can_approve", {1, 2, 3, 4}),
    ],
)
def test_role_matrix(collaboration, check, allowed):
    granted = {user_id for user_id in range(1, 7) if getattr(collaboration, check)(user_id)}
    assert granted == allowed


def test_owner_counts_as_collaborator(collaboration):
    assert collaboration.is_owner(1)
    assert collaboration.is_collaborator(1)
    assert collaboration.is_collaborator(5)
    assert not collaboration.is_collaborator(6)
    assert collaboration.find_collaborator(1) is None


def test_permission_tags():
    assert permission_tags(CollaboratorRole.REVIEWER) == ["comment", "approve"]
    assert "manage" in permission_tags("admin")
    assert permission_tags("owner") == []


def test_award_updates_listed_collaborators_only(collaboration):
    assert award(collaboration, 5, ActivityKind.VERSION_CREATED) == 10
    assert award(collaboration, 5, ActivityKind.COMMENT_ADDED) == 15
    assert collaboration.find_collaborator(5).last_active is not None
    assert award(collaboration, 1, ActivityKind.OTHER) is None


def test_points_table():
    assert points_for(ActivityKind.INVITE_SENT) == 10
    assert points_for(ActivityKind.VERSION_APPROVED) == 8
    assert set(ACTIVITY_POINTS) == set(ActivityKind)


def test_refresh_stats_counts_owner(collaboration):
    collaboration.refresh_stats()

    assert collaboration.total_contributors == 5
    assert collaboration.total_versions == 0


# ==================== Schema validation ====================


def test_create_normalizes_title_and_tags():
    payload = schemas.CollaborationCreate(
        title="  Remix  ", type="remix", tags=["Cats", " cats", "", "Dogs"]
    )

    assert payload.title == "Remix"
    assert payload.tags == ["cats", "dogs"]


@pytest.mark.parametrize("title", ["ab", "   ab  ", "x" * 201])
def test_create_rejects_bad_titles(title):
    with pytest.raises(ValidationError):
        schemas.CollaborationCreate(title=title, type="remix")


def test_update_and_fork_titles_are_stripped_like_create():
    assert schemas.CollaborationUpdate(title="  Fresh take  ").title == "Fresh take"
    assert schemas.ForkRequest(title=" My fork ").title == "My fork"
    assert schemas.CollaborationUpdate().title is None

    with pytest.raises(ValidationError):
        schemas.CollaborationUpdate(title="  a  ")
    with pytest.raises(ValidationError):
        schemas.ForkRequest(title="   ab   ")


def test_settings_bounds():
    with pytest.raises(ValidationError):
        schemas.CollaborationSettings(max_collaborators=1)
    with pytest.raises(ValidationError):
        schemas.CollaborationSettings(max_collaborators=51)
    assert schemas.CollaborationSettings().max_collaborators == 10


def test_invites_cannot_grant_admin():
    with pytest.raises(ValidationError):
        schemas.InviteCreate(username="bobby", role="admin")
    assert schemas.InviteCreate(username="bobby").role == CollaboratorRole.CONTRIBUTOR


def test_change_records_are_closed():
    version = schemas.VersionCreate.model_validate(
        {
            "title": "Swap image",
            "meme_id": 1,
            "changes": [
                {
                    "type": "image_edit",
                    "description": "New background",
                    "new_image_url": "https://cdn.example.com/bg.png",
                }
            ],
        }
    )
    assert isinstance(version.changes[0], schemas.ImageEdit)

    with pytest.raises(ValidationError):
        schemas.VersionCreate.model_validate(
            {
                "title": "Mystery",
                "meme_id": 1,
                "changes": [{"type": "rotate", "description": "spin"}],
            }
        )
