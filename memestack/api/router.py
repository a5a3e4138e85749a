"""Centralized API router registration.

Groups:
- Collaboration: collaborations, membership/invites, versions, fork/merge, comments, insights.
"""

from fastapi import APIRouter

from memestack.routers import collaboration

api_router = APIRouter()

api_router.include_router(collaboration.router)

__all__ = ["api_router"]
