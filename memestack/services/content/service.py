"""Resolution of memes, challenges and groups referenced by collaborations."""

from __future__ import annotations

from sqlalchemy.orm import Session

from memestack.core.exceptions import ResourceNotFoundException
from memestack.modules.community.models import Group
from memestack.modules.content.models import Challenge, Meme


class ContentService:
    def __init__(self, db: Session):
        self.db = db

    def get_meme(self, meme_id: int) -> Meme:
        meme = self.db.get(Meme, meme_id)
        if meme is None:
            raise ResourceNotFoundException("Meme", meme_id)
        return meme

    def get_challenge(self, challenge_id: int) -> Challenge:
        challenge = self.db.get(Challenge, challenge_id)
        if challenge is None:
            raise ResourceNotFoundException("Challenge", challenge_id)
        return challenge

    def get_group(self, group_id: int) -> Group:
        group = self.db.get(Group, group_id)
        if group is None:
            raise ResourceNotFoundException("Group", group_id)
        return group

    def is_group_member(self, group_id: int, user_id: int) -> bool:
        return self.get_group(group_id).is_member(user_id)
