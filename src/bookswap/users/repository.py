"""User repository for profile documents in the ``users`` collection."""

import logging
from typing import Optional

from google.api_core import exceptions as gexc
from pydantic.alias_generators import to_camel

from ..firebase.constants import (
    LAST_LOGIN_AT_FIELD,
    NOTIFICATION_SETTINGS_FIELD,
    UPDATED_AT_FIELD,
    USERS_COLLECTION,
)
from ..firebase.documents import utcnow
from ..firebase.repository import FirestoreRepository
from .schemas import UserProfile, UserUpdate

logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    """Raised when a user profile does not exist."""

    pass


class UserRepository(FirestoreRepository[UserProfile]):
    """Manages user profile documents."""

    collection_name = USERS_COLLECTION
    model = UserProfile

    def create_user(self, profile: UserProfile) -> UserProfile:
        """Create (or overwrite) a user's profile document."""
        self.collection.document(profile.uid).set(profile.to_firestore())
        logger.info("Created profile for user %s", profile.uid)
        return profile

    def get_user(self, uid: str) -> Optional[UserProfile]:
        """Get a profile by UID, None if it does not exist."""
        return self._get(uid)

    def user_exists(self, uid: str) -> bool:
        """Check whether a profile document exists."""
        return self.collection.document(uid).get().exists

    def get_users(self, uids: list[str]) -> list[Optional[UserProfile]]:
        """Fetch several profiles in one round trip.

        Returns:
            Profiles in the order of ``uids``, None where missing or malformed
        """
        if not uids:
            return []

        refs = [self.collection.document(uid) for uid in uids]
        found = {}
        for snapshot in self.db.get_all(refs):
            if snapshot.exists:
                found[snapshot.id] = self._parse(snapshot)
        return [found.get(uid) for uid in uids]

    def update_user(self, uid: str, data: UserUpdate) -> UserProfile:
        """Apply a partial profile update.

        Raises:
            UserNotFoundError: If the profile does not exist
        """
        updates = {
            to_camel(field): value
            for field, value in data.model_dump(exclude_unset=True).items()
        }
        updates[UPDATED_AT_FIELD] = utcnow()

        try:
            self.collection.document(uid).update(updates)
        except gexc.NotFound:
            raise UserNotFoundError(f"User not found: {uid}") from None

        logger.info("Updated profile %s", uid)
        return self.get_user(uid)

    def update_notification_settings(self, uid: str, settings: dict[str, bool]) -> UserProfile:
        """Merge notification switches into the profile.

        Only the given keys change; each is written through its own field path.

        Raises:
            UserNotFoundError: If the profile does not exist
        """
        updates = {
            f"{NOTIFICATION_SETTINGS_FIELD}.{key}": bool(value)
            for key, value in settings.items()
        }
        updates[UPDATED_AT_FIELD] = utcnow()

        try:
            self.collection.document(uid).update(updates)
        except gexc.NotFound:
            raise UserNotFoundError(f"User not found: {uid}") from None

        logger.info("Updated notification settings for %s: %s", uid, settings)
        return self.get_user(uid)

    def update_last_login(self, uid: str) -> None:
        """Stamp the last sign-in time. A missing profile is ignored."""
        now = utcnow()
        try:
            self.collection.document(uid).update(
                {LAST_LOGIN_AT_FIELD: now, UPDATED_AT_FIELD: now}
            )
        except gexc.NotFound:
            logger.debug("No profile to stamp last login for %s", uid)

    def delete_user(self, uid: str) -> None:
        """Delete a user's profile document."""
        self.collection.document(uid).delete()
        logger.info("Deleted profile %s", uid)
