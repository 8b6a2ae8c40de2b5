"""Pydantic schemas for user profiles."""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field, field_validator

from ..firebase.documents import FirestoreModel, Timestamp, utcnow
from ..validators import validate_min_length

DEFAULT_NOTIFICATION_SETTINGS = {"swaps": True, "chats": True}


class UserProfile(FirestoreModel):
    """A user profile document, keyed by the Firebase Auth UID."""

    id_field: ClassVar[str] = "uid"

    uid: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    email_verified: bool = False
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Optional[Timestamp] = None
    last_login_at: Optional[Timestamp] = None
    notification_settings: dict[str, bool] = Field(
        default_factory=lambda: dict(DEFAULT_NOTIFICATION_SETTINGS)
    )

    @field_validator("notification_settings", mode="before")
    @classmethod
    def default_settings(cls, v: Any) -> Any:
        if v is None:
            return dict(DEFAULT_NOTIFICATION_SETTINGS)
        return v

    def wants_notifications(self, kind: str) -> bool:
        """Whether the user has notifications of this kind switched on."""
        return self.notification_settings.get(kind, True)


class UserUpdate(BaseModel):
    """Schema for profile edits."""

    display_name: Optional[str] = None
    email_verified: Optional[bool] = None

    @field_validator("display_name")
    @classmethod
    def check_display_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_min_length(v, 2, "Display name")
