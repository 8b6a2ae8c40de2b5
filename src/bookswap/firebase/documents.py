"""Pydantic base model for Firestore documents.

Documents use camelCase field names while the Python side uses snake_case;
the alias generator bridges the two. Timestamps arrive from Firestore as
``DatetimeWithNanoseconds`` but older documents hold ISO strings or epoch
milliseconds, so all of them are coerced to aware datetimes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def coerce_timestamp(value: Any) -> Any:
    """Convert a stored timestamp into an aware datetime.

    Accepts datetimes (including Firestore's ``DatetimeWithNanoseconds``),
    ISO 8601 strings and integer epoch milliseconds. Anything else is passed
    through for pydantic to reject.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


Timestamp = Annotated[datetime, BeforeValidator(coerce_timestamp)]


def encode_value(value: Any) -> Any:
    """Make a dumped model value storable by Firestore."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


class FirestoreModel(BaseModel):
    """Base class for models stored as Firestore documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Document field that mirrors the Firestore document ID
    id_field: ClassVar[str] = "id"

    def to_firestore(self) -> dict[str, Any]:
        """Serialize to a Firestore document body (camelCase keys)."""
        data = self.model_dump(by_alias=True)
        return {key: encode_value(value) for key, value in data.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        """Build a model from a document body."""
        return cls.model_validate(data)

    @classmethod
    def from_firestore(cls, snapshot: Any):
        """Build a model from a document snapshot.

        The document ID always wins over any ID stored in the body.

        Raises:
            ValueError: If the snapshot has no data or fails validation
        """
        data = snapshot.to_dict()
        if data is None:
            raise ValueError(f"Document {snapshot.id} has no data")
        data = dict(data)
        data[cls.id_field] = snapshot.id
        return cls.from_dict(data)
