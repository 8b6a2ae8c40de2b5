"""Firebase Authentication client over the Identity Toolkit REST API.

Covers email/password accounts: sign-up, sign-in, verification and
password-reset emails, account lookup and display-name updates. Requires a
web API key (``BOOKSWAP_API_KEY``).
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from ..config import get_config

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when an authentication request fails.

    ``code`` is the Identity Toolkit error code (e.g. ``EMAIL_EXISTS``);
    the message is suitable for showing to a user.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class EmailNotVerifiedError(AuthError):
    """Raised when an unverified account tries to sign in."""

    def __init__(self):
        super().__init__(
            "EMAIL_NOT_VERIFIED",
            "Please verify your email address before signing in. "
            "Check your inbox for the verification email.",
        )


# Identity Toolkit error codes mapped to user-facing messages
ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account found with this email address.",
    "USER_NOT_FOUND": "No account found with this email address.",
    "INVALID_PASSWORD": "Incorrect password. Please try again.",
    "EMAIL_EXISTS": "An account already exists with this email address.",
    "WEAK_PASSWORD": "Password is too weak. Please use a stronger password.",
    "INVALID_EMAIL": "Invalid email address. Please enter a valid email.",
    "USER_DISABLED": "This account has been disabled. Please contact support.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "OPERATION_NOT_ALLOWED": "This sign-in method is not enabled. Please contact support.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password. Please try again.",
    "INVALID_ID_TOKEN": "Please sign out and sign in again to perform this action.",
    "TOKEN_EXPIRED": "Please sign out and sign in again to perform this action.",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "Please sign out and sign in again to perform this action.",
    "NETWORK_REQUEST_FAILED": "Network error. Please check your internet connection.",
}

DEFAULT_ERROR_MESSAGE = "An authentication error occurred. Please try again."


def error_from_response(response: Any) -> AuthError:
    """Build an AuthError from an Identity Toolkit error response."""
    try:
        raw = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return AuthError("HTTP_ERROR", f"HTTP error: {response.status_code}")

    # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
    code = raw.split(" : ", 1)[0].strip()
    return AuthError(code, ERROR_MESSAGES.get(code, DEFAULT_ERROR_MESSAGE))


@dataclass
class AuthSession:
    """The signed-in account."""

    uid: str
    email: str
    id_token: str
    refresh_token: str = ""
    display_name: Optional[str] = None
    email_verified: bool = False


class AuthService:
    """Client for Firebase email/password authentication."""

    BASE_URL = "https://identitytoolkit.googleapis.com/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        require_verified_email: Optional[bool] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client.

        Args:
            api_key: Firebase web API key (defaults to config)
            timeout: Request timeout in seconds (defaults to config)
            require_verified_email: Refuse sign-in for unverified accounts
            session: HTTP session to use

        Raises:
            AuthError: If no API key is configured
        """
        config = get_config()
        self.api_key = api_key or config.api_key
        if not self.api_key:
            raise AuthError(
                "CONFIGURATION", "No Firebase API key configured (set BOOKSWAP_API_KEY)"
            )
        self.timeout = timeout if timeout is not None else config.auth_timeout
        if require_verified_email is None:
            require_verified_email = config.require_verified_email
        self.require_verified_email = require_verified_email

        self._session = session or requests.Session()
        self._current: Optional[AuthSession] = None

    def _post(self, endpoint: str, payload: dict) -> dict:
        """POST to an ``accounts:*`` endpoint with error handling."""
        url = f"{self.BASE_URL}/accounts:{endpoint}"
        try:
            response = self._session.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning("Auth request %s failed: %s", endpoint, e)
            raise AuthError(
                "NETWORK_REQUEST_FAILED", ERROR_MESSAGES["NETWORK_REQUEST_FAILED"]
            ) from e

        if not response.ok:
            error = error_from_response(response)
            logger.info("Auth request %s rejected: %s", endpoint, error.code)
            raise error
        return response.json()

    def _require_user(self) -> AuthSession:
        if self._current is None:
            raise AuthError("NO_USER", "No user is signed in. Please sign up or sign in first.")
        return self._current

    # ========================================================================
    # Accounts
    # ========================================================================

    @property
    def current_user(self) -> Optional[AuthSession]:
        """The signed-in account, if any."""
        return self._current

    def sign_up(self, email: str, password: str) -> AuthSession:
        """Create an account and send its verification email.

        Returns:
            Session for the new account
        """
        email = email.strip()
        logger.info("Signing up %s", email)
        data = self._post(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        self._current = AuthSession(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken", ""),
        )
        self.send_email_verification()
        logger.info("Signed up user %s", self._current.uid)
        return self._current

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password.

        The account is reloaded to pick up its verification status.

        Raises:
            EmailNotVerifiedError: If verification is required and missing
        """
        email = email.strip()
        logger.info("Signing in %s", email)
        data = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        self._current = AuthSession(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken", ""),
            display_name=data.get("displayName") or None,
        )
        self.reload_user()

        if self.require_verified_email and not self._current.email_verified:
            logger.info("Sign in blocked for unverified user %s", self._current.uid)
            self.sign_out()
            raise EmailNotVerifiedError()

        logger.info("Signed in user %s", self._current.uid)
        return self._current

    def sign_out(self) -> None:
        """Forget the signed-in account."""
        if self._current is not None:
            logger.info("Signed out user %s", self._current.uid)
        self._current = None

    def send_email_verification(self) -> None:
        """Send a verification email to the signed-in account.

        Raises:
            AuthError: If nobody is signed in or the email is already verified
        """
        user = self._require_user()
        if user.email_verified:
            raise AuthError("ALREADY_VERIFIED", "Your email is already verified.")
        self._post("sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": user.id_token})
        logger.info("Sent verification email to %s", user.email)

    def send_password_reset(self, email: str) -> None:
        """Send a password-reset email."""
        email = email.strip()
        self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
        logger.info("Sent password reset email to %s", email)

    def reload_user(self) -> AuthSession:
        """Refresh the signed-in account from Firebase."""
        user = self._require_user()
        data = self._post("lookup", {"idToken": user.id_token})
        users = data.get("users") or []
        if not users:
            raise AuthError("USER_NOT_FOUND", ERROR_MESSAGES["USER_NOT_FOUND"])

        account = users[0]
        user.email = account.get("email", user.email)
        user.email_verified = bool(account.get("emailVerified", False))
        user.display_name = account.get("displayName") or user.display_name
        return user

    def is_email_verified(self) -> bool:
        """Reload the account and report whether its email is verified."""
        return self.reload_user().email_verified

    def update_display_name(self, display_name: str) -> AuthSession:
        """Change the signed-in account's display name."""
        user = self._require_user()
        display_name = display_name.strip()
        self._post(
            "update",
            {
                "idToken": user.id_token,
                "displayName": display_name,
                "returnSecureToken": False,
            },
        )
        user.display_name = display_name
        logger.info("Updated display name for %s", user.uid)
        return user
