"""Tests for UserRepository and profile schemas."""

import pytest
from pydantic import ValidationError

from bookswap.users import (
    DEFAULT_NOTIFICATION_SETTINGS,
    UserNotFoundError,
    UserProfile,
    UserUpdate,
)


class TestUserProfile:
    """Tests for the profile model."""

    def test_document_keyed_by_uid(self, users, fake_db, alice):
        """Test the profile is stored under its UID with camelCase fields."""
        doc = fake_db.store["users/alice"]
        assert doc["uid"] == "alice"
        assert doc["displayName"] == "Alice"
        assert doc["emailVerified"] is False
        assert doc["notificationSettings"] == {"swaps": True, "chats": True}

    def test_missing_settings_default(self):
        """Test stored profiles without settings get the defaults."""
        profile = UserProfile.from_dict({
            "uid": "u1",
            "email": "u1@example.com",
            "displayName": "U One",
            "notificationSettings": None,
        })
        assert profile.notification_settings == DEFAULT_NOTIFICATION_SETTINGS
        assert profile.wants_notifications("swaps")
        assert profile.wants_notifications("anything-else")

    def test_update_display_name_validated(self):
        """Test renames are trimmed and length-checked."""
        assert UserUpdate(display_name="  Bea ").display_name == "Bea"
        with pytest.raises(ValidationError, match="Display name must be at least 2"):
            UserUpdate(display_name="B")


class TestUserRepository:
    """Tests for profile storage."""

    def test_get_user(self, users, alice):
        """Test reading a stored profile."""
        profile = users.get_user("alice")
        assert profile.uid == "alice"
        assert profile.email == "alice@example.com"

    def test_get_missing_user(self, users):
        """Test reading an unknown profile."""
        assert users.get_user("ghost") is None
        assert not users.user_exists("ghost")

    def test_user_exists(self, users, alice):
        """Test the existence check."""
        assert users.user_exists("alice")

    def test_get_users_keeps_order(self, users, alice, bob):
        """Test batch reads return profiles in request order."""
        result = users.get_users(["bob", "ghost", "alice"])
        assert [p.uid if p else None for p in result] == ["bob", None, "alice"]
        assert users.get_users([]) == []

    def test_update_user(self, users, fake_db, alice):
        """Test a partial profile update."""
        updated = users.update_user("alice", UserUpdate(display_name="Alice L."))

        assert updated.display_name == "Alice L."
        assert updated.email == "alice@example.com"
        assert fake_db.store["users/alice"]["updatedAt"] is not None

    def test_update_missing_user(self, users, firebase):
        """Test updating an unknown profile."""
        with pytest.raises(UserNotFoundError):
            users.update_user("ghost", UserUpdate(display_name="Ghost"))

    def test_update_notification_settings_merges(self, users, alice):
        """Test switching one kind leaves the others alone."""
        profile = users.update_notification_settings("alice", {"chats": False})

        assert profile.notification_settings == {"swaps": True, "chats": False}
        assert not profile.wants_notifications("chats")

    def test_update_notification_settings_missing_user(self, users, firebase):
        """Test settings on an unknown profile."""
        with pytest.raises(UserNotFoundError):
            users.update_notification_settings("ghost", {"swaps": False})

    def test_update_last_login(self, users, alice):
        """Test stamping the last sign-in."""
        assert alice.last_login_at is None
        users.update_last_login("alice")
        assert users.get_user("alice").last_login_at is not None

    def test_update_last_login_missing_user(self, users, firebase):
        """Test stamping an unknown profile is a no-op."""
        users.update_last_login("ghost")
        assert users.get_user("ghost") is None

    def test_delete_user(self, users, alice):
        """Test removing a profile."""
        users.delete_user("alice")
        assert users.get_user("alice") is None
