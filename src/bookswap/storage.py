"""Cover image storage on Firebase Storage.

Images are written under ``book_images/<owner_id>/<book_id>.jpg`` and
addressed by Firebase download URLs of the form::

    https://firebasestorage.googleapis.com/v0/b/<bucket>/o/<encoded path>?alt=media&token=<token>
"""

import logging
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse
from uuid import uuid4

from .firebase.client import Firebase, get_firebase
from .firebase.constants import BOOK_IMAGES_PATH

logger = logging.getLogger(__name__)

DOWNLOAD_HOST = "firebasestorage.googleapis.com"


class ImageStore:
    """Uploads and deletes book cover images."""

    def __init__(self, firebase: Optional[Firebase] = None):
        """Initialize image store.

        Args:
            firebase: Firebase instance (defaults to the global one)
        """
        self.firebase = firebase or get_firebase()

    @property
    def bucket(self) -> Any:
        return self.firebase.bucket

    @staticmethod
    def book_image_path(owner_id: str, book_id: str) -> str:
        """Storage path for a book's cover image."""
        return f"{BOOK_IMAGES_PATH}/{owner_id}/{book_id}.jpg"

    def download_url(self, path: str, token: str) -> str:
        """Build the public download URL for a stored object."""
        return (
            f"https://{DOWNLOAD_HOST}/v0/b/{self.bucket.name}/o/"
            f"{quote(path, safe='')}?alt=media&token={token}"
        )

    @staticmethod
    def path_from_url(url: str) -> str:
        """Recover the storage path from a download URL.

        Raises:
            ValueError: If the URL is not a Firebase Storage download URL
        """
        parsed = urlparse(url)
        marker = "/o/"
        if marker not in parsed.path:
            raise ValueError(f"Invalid image URL format: {url}")
        encoded = parsed.path.split(marker, 1)[1]
        if not encoded:
            raise ValueError(f"Invalid image URL format: {url}")
        return unquote(encoded)

    def upload_book_image(self, data: bytes, owner_id: str, book_id: str) -> str:
        """Upload JPEG bytes as a book cover.

        Args:
            data: Image bytes
            owner_id: Owner's user ID
            book_id: Book ID

        Returns:
            Download URL of the uploaded image
        """
        path = self.book_image_path(owner_id, book_id)
        token = str(uuid4())

        blob = self.bucket.blob(path)
        blob.metadata = {"firebaseStorageDownloadTokens": token}
        blob.upload_from_string(data, content_type="image/jpeg")

        logger.info("Uploaded book image %s (%d bytes)", path, len(data))
        return self.download_url(path, token)

    def delete_image(self, url: str) -> None:
        """Delete the object behind a download URL."""
        path = self.path_from_url(url)
        self.bucket.blob(path).delete()
        logger.info("Deleted image %s", path)
