"""Firebase app initialization and client access.

Wraps ``firebase_admin`` so the rest of the package asks one object for its
Firestore client and Storage bucket. Both can be injected, which is how the
tests swap in in-memory fakes.
"""

import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore, storage

from ..config import Config, get_config

logger = logging.getLogger(__name__)


class FirebaseInitError(Exception):
    """Raised when the Firebase app or one of its clients cannot be created."""

    pass


class Firebase:
    """Lazily initialized Firebase app with Firestore and Storage clients."""

    APP_NAME = "bookswap"

    def __init__(
        self,
        config: Optional[Config] = None,
        firestore_client: Optional[Any] = None,
        bucket: Optional[Any] = None,
    ):
        """Initialize Firebase access.

        Args:
            config: Configuration to initialize from. Defaults to the global config.
            firestore_client: Pre-built Firestore client (skips app init)
            bucket: Pre-built Storage bucket (skips app init)
        """
        self.config = config or get_config()
        self._firestore = firestore_client
        self._bucket = bucket
        self._app: Optional[firebase_admin.App] = None

    @property
    def is_initialized(self) -> bool:
        """Whether the underlying firebase_admin app has been created."""
        return self._app is not None

    def _get_app(self) -> firebase_admin.App:
        """Create the firebase_admin app on first use."""
        if self._app is not None:
            return self._app

        try:
            self._app = firebase_admin.get_app(self.APP_NAME)
            return self._app
        except ValueError:
            pass

        options = {}
        if self.config.project_id:
            options["projectId"] = self.config.project_id
        if self.config.storage_bucket:
            options["storageBucket"] = self.config.storage_bucket

        try:
            if self.config.credentials_path:
                cred = credentials.Certificate(str(self.config.credentials_path))
            else:
                cred = credentials.ApplicationDefault()
            self._app = firebase_admin.initialize_app(cred, options, name=self.APP_NAME)
        except (ValueError, OSError) as e:
            raise FirebaseInitError(f"Could not initialize Firebase: {e}") from e

        logger.info("Firebase app initialized for project %s", self.config.project_id)
        return self._app

    @property
    def firestore(self) -> Any:
        """Firestore client."""
        if self._firestore is None:
            try:
                self._firestore = firestore.client(self._get_app())
            except ValueError as e:
                raise FirebaseInitError(f"Could not create Firestore client: {e}") from e
        return self._firestore

    @property
    def bucket(self) -> Any:
        """Default Storage bucket."""
        if self._bucket is None:
            try:
                self._bucket = storage.bucket(app=self._get_app())
            except ValueError as e:
                raise FirebaseInitError(f"Could not open Storage bucket: {e}") from e
        return self._bucket

    def close(self) -> None:
        """Delete the firebase_admin app and drop cached clients."""
        if self._app is not None:
            firebase_admin.delete_app(self._app)
        self._app = None
        self._firestore = None
        self._bucket = None


# Global Firebase instance
_firebase: Optional[Firebase] = None


def get_firebase() -> Firebase:
    """Get or create the global Firebase instance."""
    global _firebase
    if _firebase is None:
        _firebase = Firebase()
    return _firebase


def set_firebase(firebase: Firebase) -> None:
    """Replace the global Firebase instance."""
    global _firebase
    _firebase = firebase


def reset_firebase() -> None:
    """Reset the global Firebase instance. Used for testing."""
    global _firebase
    if _firebase is not None:
        _firebase.close()
    _firebase = None
