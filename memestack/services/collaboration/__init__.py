"""Collaboration service exports."""

from .service import CollaborationService

__all__ = ["CollaborationService"]
