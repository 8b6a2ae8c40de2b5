"""Base class for Firestore-backed repositories."""

import logging
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from .client import Firebase, get_firebase
from .documents import FirestoreModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=FirestoreModel)


class FirestoreRepository(Generic[T]):
    """Collection access and snapshot parsing shared by all repositories."""

    collection_name: str = ""
    model: type[T]

    def __init__(self, firebase: Optional[Firebase] = None):
        """Initialize repository.

        Args:
            firebase: Firebase instance (defaults to the global one)
        """
        self.firebase = firebase or get_firebase()

    @property
    def db(self) -> Any:
        """Firestore client."""
        return self.firebase.firestore

    @property
    def collection(self) -> Any:
        """Reference to this repository's collection."""
        return self.db.collection(self.collection_name)

    def _parse(self, snapshot: Any) -> Optional[T]:
        """Parse one snapshot, returning None for malformed documents."""
        try:
            return self.model.from_firestore(snapshot)
        except (ValueError, TypeError) as e:
            logger.warning(
                "Skipping malformed %s document %s: %s",
                self.collection_name,
                snapshot.id,
                e,
            )
            return None

    def _parse_docs(self, snapshots: Iterable[Any]) -> list[T]:
        """Parse snapshots, dropping missing and malformed documents."""
        items = []
        for snapshot in snapshots:
            if not snapshot.exists:
                continue
            item = self._parse(snapshot)
            if item is not None:
                items.append(item)
        return items

    def _get(self, doc_id: str) -> Optional[T]:
        """Fetch a single document by ID, None if it does not exist."""
        snapshot = self.collection.document(doc_id).get()
        if not snapshot.exists:
            return None
        return self.model.from_firestore(snapshot)

    def _watch(
        self,
        query: Any,
        callback: Callable[[list[T]], None],
        transform: Optional[Callable[[list[T]], list[T]]] = None,
    ) -> Any:
        """Listen to a query, calling back with parsed models on every change.

        Returns:
            The Firestore watch handle; call ``unsubscribe()`` to stop.
        """

        def on_snapshot(snapshots, changes, read_time):
            items = self._parse_docs(snapshots)
            if transform is not None:
                items = transform(items)
            callback(items)

        return query.on_snapshot(on_snapshot)
