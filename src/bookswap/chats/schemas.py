"""Pydantic schemas for chats and messages."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..firebase.documents import FirestoreModel, Timestamp, utcnow
from ..users.schemas import UserProfile


class ChatParticipant(BaseModel):
    """One side of a conversation."""

    uid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email: str = ""
    avatar: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "ChatParticipant":
        return cls(uid=profile.uid, name=profile.display_name, email=profile.email)


class Chat(FirestoreModel):
    """A two-person conversation.

    Participant lists are kept in sorted-ID order so the same pair always
    maps to the same ``participantIds`` value.
    """

    id: str = Field(..., min_length=1)
    participant_ids: list[str] = Field(..., min_length=2, max_length=2)
    participant_names: list[str]
    participant_emails: list[str]
    participant_avatars: list[Optional[str]] = Field(default_factory=list)
    book_id: Optional[str] = None
    book_title: Optional[str] = None
    book_image_url: Optional[str] = None
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    last_message_id: Optional[str] = None
    last_message_text: Optional[str] = None
    last_message_time: Optional[Timestamp] = None
    last_message_sender_id: Optional[str] = None
    unread_counts: dict[str, int] = Field(default_factory=dict)

    @field_validator("participant_avatars", mode="before")
    @classmethod
    def no_avatars_if_missing(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("unread_counts", mode="before")
    @classmethod
    def no_counts_if_missing(cls, v: Any) -> Any:
        return {} if v is None else v

    @classmethod
    def between(
        cls,
        chat_id: str,
        first: ChatParticipant,
        second: ChatParticipant,
        **book: Optional[str],
    ) -> "Chat":
        """Build a new chat with participants in sorted-ID order."""
        ordered = sorted([first, second], key=lambda p: p.uid)
        now = utcnow()
        return cls(
            id=chat_id,
            participant_ids=[p.uid for p in ordered],
            participant_names=[p.name for p in ordered],
            participant_emails=[p.email for p in ordered],
            participant_avatars=[p.avatar for p in ordered],
            created_at=now,
            updated_at=now,
            **book,
        )

    def _other_index(self, user_id: str) -> int:
        for index, uid in enumerate(self.participant_ids):
            if uid != user_id:
                return index
        return -1

    def other_participant_id(self, user_id: str) -> str:
        """ID of the participant who is not ``user_id``."""
        index = self._other_index(user_id)
        return self.participant_ids[index] if index >= 0 else self.participant_ids[0]

    def other_participant_name(self, user_id: str) -> str:
        index = self._other_index(user_id)
        return self.participant_names[index] if index >= 0 else self.participant_names[0]

    def other_participant_avatar(self, user_id: str) -> Optional[str]:
        index = self._other_index(user_id)
        if index < 0 or index >= len(self.participant_avatars):
            return None
        return self.participant_avatars[index]

    def unread_count(self, user_id: str) -> int:
        return self.unread_counts.get(user_id, 0)

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids


class Message(FirestoreModel):
    """A message stored in the top-level ``messages`` collection."""

    id: str = Field(..., min_length=1)
    chat_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str
    text: str
    timestamp: Timestamp = Field(default_factory=utcnow)
    is_read: bool = False

    @field_validator("is_read", mode="before")
    @classmethod
    def unread_if_missing(cls, v: Any) -> Any:
        return False if v is None else v
