"""Users service exports."""

from .service import UserService

__all__ = ["UserService"]
