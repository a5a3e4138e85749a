"""User-facing pydantic shapes shared by other domains."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserBrief(BaseModel):
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
