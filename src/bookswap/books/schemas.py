"""Pydantic schemas for book listings."""

from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..firebase.documents import FirestoreModel, Timestamp, utcnow
from ..validators import validate_isbn, validate_min_length


class BookCondition(str, Enum):
    """Physical condition of a listed book."""

    NEW = "New"
    LIKE_NEW = "Like New"
    GOOD = "Good"
    USED = "Used"

    @classmethod
    def parse(cls, value: Any) -> "BookCondition":
        """Parse a condition leniently ("like new", "likenew", "LIKE_NEW")."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", " ")
        for condition in cls:
            if key in (condition.value.lower(), condition.value.lower().replace(" ", "")):
                return condition
        raise ValueError(f"Invalid book condition: {value}")

    @property
    def display(self) -> str:
        return self.value

    @property
    def color(self) -> str:
        """Badge colour used when rendering the condition."""
        return _CONDITION_COLORS[self]


_CONDITION_COLORS = {
    BookCondition.NEW: "#4CAF50",
    BookCondition.LIKE_NEW: "#4A9FF5",
    BookCondition.GOOD: "#FF9800",
    BookCondition.USED: "#9E9E9E",
}


class BookStatus(str, Enum):
    """Whether a book is open to new swap offers."""

    AVAILABLE = "available"
    PENDING = "pending"
    SWAPPED = "swapped"

    @classmethod
    def parse(cls, value: Any) -> "BookStatus":
        """Parse a status case-insensitively."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid book status: {value}") from None

    @property
    def display(self) -> str:
        return self.value.title()


# Statuses that appear in the public browse listing
LISTED_STATUSES = (BookStatus.AVAILABLE, BookStatus.PENDING)


def _parse_condition(value: Any) -> Any:
    if value is None:
        return value
    return BookCondition.parse(value)


class Book(FirestoreModel):
    """A book listing as stored in the ``books`` collection."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    condition: BookCondition
    image_url: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    owner_name: str = Field(..., min_length=1)
    owner_email: str = Field(..., min_length=1)
    isbn: Optional[str] = None
    description: Optional[str] = None
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    status: BookStatus = BookStatus.AVAILABLE
    swap_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data: Any) -> Any:
        """Accept the legacy ``bookId`` key and default ``updatedAt`` to ``createdAt``."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("id") and data.get("bookId"):
            data["id"] = data["bookId"]
        if data.get("status") is None:
            data.pop("status", None)
        if data.get("updatedAt") is None and data.get("updated_at") is None:
            created = data.get("createdAt", data.get("created_at"))
            if created is not None:
                data["updatedAt"] = created
        return data

    @field_validator("condition", mode="before")
    @classmethod
    def check_condition(cls, v: Any) -> Any:
        return _parse_condition(v)

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v: Any) -> Any:
        return BookStatus.parse(v)

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: Optional[str]) -> Optional[str]:
        return validate_isbn(v)

    def to_firestore(self) -> dict[str, Any]:
        data = super().to_firestore()
        data["bookId"] = self.id
        return data

    @property
    def is_available(self) -> bool:
        return self.status == BookStatus.AVAILABLE

    @property
    def is_listed(self) -> bool:
        """Whether the book shows up when browsing."""
        return self.status in LISTED_STATUSES


class BookCreate(BaseModel):
    """Schema for listing a new book."""

    title: str
    author: str
    condition: BookCondition
    owner_id: str = Field(..., min_length=1)
    owner_name: str = Field(..., min_length=1)
    owner_email: str = Field(..., min_length=1)
    isbn: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        return validate_min_length(v, 2, "Book title")

    @field_validator("author")
    @classmethod
    def check_author(cls, v: str) -> str:
        return validate_min_length(v, 2, "Author name")

    @field_validator("owner_name", "owner_email")
    @classmethod
    def strip_owner(cls, v: str) -> str:
        return v.strip()

    @field_validator("condition", mode="before")
    @classmethod
    def check_condition(cls, v: Any) -> Any:
        return _parse_condition(v)

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: Optional[str]) -> Optional[str]:
        return validate_isbn(v)


class BookUpdate(BaseModel):
    """Schema for editing a listing. Only fields that are set get written."""

    title: Optional[str] = None
    author: Optional[str] = None
    condition: Optional[BookCondition] = None
    image_url: Optional[str] = None
    isbn: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_min_length(v, 2, "Book title")

    @field_validator("author")
    @classmethod
    def check_author(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_min_length(v, 2, "Author name")

    @field_validator("condition", mode="before")
    @classmethod
    def check_condition(cls, v: Any) -> Any:
        return _parse_condition(v)

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v: Optional[str]) -> Optional[str]:
        return validate_isbn(v)

    def to_firestore(self) -> dict[str, Any]:
        """Changed fields as a camelCase update payload."""
        updates = {}
        for field, value in self.model_dump(exclude_unset=True).items():
            if field == "condition" and value is not None:
                value = value.value
            updates[to_camel(field)] = value
        return updates
