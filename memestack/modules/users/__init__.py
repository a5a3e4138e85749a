"""Users domain exports."""

from .models import User, UserRole
from .schemas import UserBrief

__all__ = ["User", "UserRole", "UserBrief"]
