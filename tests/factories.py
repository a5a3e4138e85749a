"""Row builders shared by the service and API suites."""

from memestack import models
from memestack.oauth2 import create_access_token


def make_user(session, username: str, **fields):
    user = models.User(
        username=username,
        email=f"{username}@example.com",
        hashed_password="hashed",
        **fields,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_meme(session, creator_id: int, title: str = "Distracted boyfriend"):
    meme = models.Meme(
        title=title, image_url="https://cdn.example.com/meme.png", creator_id=creator_id
    )
    session.add(meme)
    session.commit()
    session.refresh(meme)
    return meme


def make_group(session, owner_id: int, slug: str = "dank", member_ids=()):
    group = models.Group(name=slug.title(), slug=slug, owner_id=owner_id)
    group.members = [models.GroupMember(user_id=user_id) for user_id in member_ids]
    session.add(group)
    session.commit()
    session.refresh(group)
    return group


def make_challenge(session, title: str = "Caption this"):
    challenge = models.Challenge(title=title)
    session.add(challenge)
    session.commit()
    session.refresh(challenge)
    return challenge


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'user_id': user_id})}"}
