"""Email/password authentication through Firebase Auth."""

from .accounts import AccountManager
from .service import AuthError, AuthService, AuthSession, EmailNotVerifiedError

__all__ = [
    "AccountManager",
    "AuthService",
    "AuthSession",
    "AuthError",
    "EmailNotVerifiedError",
]
