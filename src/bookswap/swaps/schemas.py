"""Pydantic schemas for swap offers."""

from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..books.schemas import Book
from ..firebase.documents import FirestoreModel, Timestamp, utcnow
from ..users.schemas import UserProfile


class SwapStatus(str, Enum):
    """Status of a swap offer."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Any) -> "SwapStatus":
        """Parse a status case-insensitively."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid swap status: {value}") from None

    @property
    def display(self) -> str:
        return self.value.title()

    @property
    def color(self) -> str:
        return _STATUS_COLORS[self]


_STATUS_COLORS = {
    SwapStatus.PENDING: "#FF9800",
    SwapStatus.ACCEPTED: "#4CAF50",
    SwapStatus.REJECTED: "#F44336",
    SwapStatus.CANCELLED: "#9E9E9E",
}


class Swap(FirestoreModel):
    """A swap offer as stored in the ``swaps`` collection."""

    id: str = Field(..., min_length=1)
    book_id: str = Field(..., min_length=1)
    book_title: str = Field(..., min_length=1)
    book_image_url: str = ""
    sender_id: str = Field(..., min_length=1)
    sender_name: str = "Unknown"
    sender_email: str = ""
    recipient_id: str = Field(..., min_length=1)
    recipient_name: str = "Unknown"
    recipient_email: str = ""
    status: SwapStatus = SwapStatus.PENDING
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    message: Optional[str] = None

    @field_validator("book_image_url", "sender_email", "recipient_email", mode="before")
    @classmethod
    def empty_if_missing(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("sender_name", "recipient_name", mode="before")
    @classmethod
    def unknown_if_missing(cls, v: Any) -> Any:
        return "Unknown" if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v: Any) -> Any:
        if v is None:
            return SwapStatus.PENDING
        return SwapStatus.parse(v)

    @property
    def is_pending(self) -> bool:
        return self.status == SwapStatus.PENDING

    def involves(self, user_id: str) -> bool:
        """Whether the user sent or received this offer."""
        return user_id in (self.sender_id, self.recipient_id)


class SwapOfferCreate(BaseModel):
    """Schema for making a swap offer on a book."""

    book_id: str = Field(..., min_length=1)
    book_title: str = Field(..., min_length=1)
    book_image_url: str = ""
    sender_id: str = Field(..., min_length=1)
    sender_name: str = Field(..., min_length=1)
    sender_email: str = ""
    recipient_id: str = Field(..., min_length=1)
    recipient_name: str = Field(..., min_length=1)
    recipient_email: str = ""
    message: Optional[str] = None

    @field_validator("message")
    @classmethod
    def blank_message_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @classmethod
    def for_book(
        cls,
        book: Book,
        sender: UserProfile,
        message: Optional[str] = None,
    ) -> "SwapOfferCreate":
        """Build an offer from a listing and the sender's profile."""
        return cls(
            book_id=book.id,
            book_title=book.title,
            book_image_url=book.image_url,
            sender_id=sender.uid,
            sender_name=sender.display_name,
            sender_email=sender.email,
            recipient_id=book.owner_id,
            recipient_name=book.owner_name,
            recipient_email=book.owner_email,
            message=message,
        )

    def to_swap(self) -> Swap:
        """Materialize the offer as a new pending swap."""
        now = utcnow()
        return Swap(
            id=str(uuid4()),
            status=SwapStatus.PENDING,
            created_at=now,
            updated_at=now,
            **self.model_dump(),
        )


class SwapStats(BaseModel):
    """Swap counts for one user."""

    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    cancelled: int = 0
    sent: int = 0
    received: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.accepted + self.rejected + self.cancelled
