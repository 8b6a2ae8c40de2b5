"""In-memory stand-ins for Firestore and Storage used by the test suite."""

from .firestore import FakeFirestoreClient
from .storage import FakeBucket

__all__ = ["FakeFirestoreClient", "FakeBucket"]
