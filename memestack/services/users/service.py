"""Identity lookups used by other domains."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from memestack.core.exceptions import ResourceNotFoundException
from memestack.modules.users.models import User


class UserService:
    """Resolves usernames to profiles."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_username(self, username: str) -> User:
        """Case-insensitive username lookup."""
        user = (
            self.db.query(User)
            .filter(func.lower(User.username) == username.strip().lower())
            .first()
        )
        if user is None:
            raise ResourceNotFoundException("User", username)
        return user
