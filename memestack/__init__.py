"""MemeStack package init."""

from memestack.core.config import Settings, settings
from memestack.core.database import Base, SessionLocal, engine, get_db

__all__ = [
    "settings",
    "Settings",
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
]
