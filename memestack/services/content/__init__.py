"""Content service exports."""

from .service import ContentService

__all__ = ["ContentService"]
