"""Content domain exports."""

from .models import Challenge, ChallengeStatus, Meme

__all__ = ["Challenge", "ChallengeStatus", "Meme"]
