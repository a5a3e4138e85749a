"""Community domain exports."""

from .models import Group, GroupMember, GroupRole

__all__ = ["Group", "GroupMember", "GroupRole"]
