"""User profiles module."""

from .repository import UserNotFoundError, UserRepository
from .schemas import DEFAULT_NOTIFICATION_SETTINGS, UserProfile, UserUpdate

__all__ = [
    "UserRepository",
    "UserNotFoundError",
    "UserProfile",
    "UserUpdate",
    "DEFAULT_NOTIFICATION_SETTINGS",
]
