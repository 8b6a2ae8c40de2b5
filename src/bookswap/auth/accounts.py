"""Account flows that keep Firebase Auth and user profiles in step."""

import logging
from typing import Optional

from google.api_core import exceptions as gexc

from ..firebase.documents import utcnow
from ..users.repository import UserNotFoundError, UserRepository
from ..users.schemas import UserProfile, UserUpdate
from ..validators import validate_email, validate_min_length, validate_password
from .service import AuthError, AuthService

logger = logging.getLogger(__name__)


class AccountManager:
    """Signs users up and in, creating and stamping their profiles."""

    def __init__(
        self,
        auth: Optional[AuthService] = None,
        users: Optional[UserRepository] = None,
    ):
        self.auth = auth or AuthService()
        self.users = users or UserRepository()

    def sign_up(self, email: str, password: str, display_name: str) -> UserProfile:
        """Create an account and its profile document.

        A failed profile write is logged and does not undo the sign-up; the
        profile is created on the next sign-in instead.

        Raises:
            ValueError: If a field fails validation
            AuthError: If Firebase rejects the sign-up
        """
        email = validate_email(email)
        password = validate_password(password)
        display_name = validate_min_length(display_name, 2, "Display name")

        session = self.auth.sign_up(email, password)
        try:
            self.auth.update_display_name(display_name)
        except AuthError as e:
            logger.warning("Could not set display name for %s: %s", session.uid, e)

        profile = UserProfile(
            uid=session.uid,
            email=session.email or email,
            display_name=display_name,
            email_verified=session.email_verified,
            created_at=utcnow(),
        )
        try:
            self.users.create_user(profile)
        except gexc.GoogleAPIError as e:
            logger.error("Could not create profile for %s: %s", session.uid, e)
        return profile

    def sign_in(self, email: str, password: str) -> UserProfile:
        """Sign in and return the user's profile.

        Stamps ``lastLoginAt`` and syncs the verification flag. A missing
        profile is created from the account.
        """
        session = self.auth.sign_in(email, password)

        profile = self.users.get_user(session.uid)
        if profile is None:
            now = utcnow()
            profile = UserProfile(
                uid=session.uid,
                email=session.email,
                display_name=session.display_name or session.email.split("@")[0] or "User",
                email_verified=session.email_verified,
                created_at=now,
                last_login_at=now,
            )
            self.users.create_user(profile)
            return profile

        self.users.update_last_login(session.uid)
        if profile.email_verified != session.email_verified:
            return self.users.update_user(
                session.uid, UserUpdate(email_verified=session.email_verified)
            )
        return self.users.get_user(session.uid) or profile

    def sign_out(self) -> None:
        self.auth.sign_out()

    def reset_password(self, email: str) -> None:
        """Send a password-reset email after checking the address."""
        self.auth.send_password_reset(validate_email(email))

    def update_display_name(self, display_name: str) -> UserProfile:
        """Rename the signed-in user in Auth and in their profile.

        Raises:
            AuthError: If nobody is signed in
            UserNotFoundError: If the user has no profile
        """
        display_name = validate_min_length(display_name, 2, "Display name")
        session = self.auth.update_display_name(display_name)
        if not self.users.user_exists(session.uid):
            raise UserNotFoundError(f"User not found: {session.uid}")
        return self.users.update_user(session.uid, UserUpdate(display_name=display_name))
