"""Firebase access layer: app initialization, document models, repositories."""

from .client import Firebase, FirebaseInitError, get_firebase, reset_firebase, set_firebase
from .documents import FirestoreModel, Timestamp, coerce_timestamp, utcnow
from .repository import FirestoreRepository

__all__ = [
    "Firebase",
    "FirebaseInitError",
    "get_firebase",
    "reset_firebase",
    "set_firebase",
    "FirestoreModel",
    "Timestamp",
    "coerce_timestamp",
    "utcnow",
    "FirestoreRepository",
]
