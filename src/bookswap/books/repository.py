"""Book repository for listing operations on the ``books`` collection."""

import logging
from typing import Any, Callable, Optional
from uuid import uuid4

from google.api_core import exceptions as gexc
from google.cloud.firestore import DELETE_FIELD, FieldFilter
from thefuzz import fuzz

from ..firebase.client import Firebase
from ..firebase.constants import (
    BOOKS_COLLECTION,
    CONDITION_FIELD,
    OWNER_ID_FIELD,
    STATUS_FIELD,
    SWAP_ID_FIELD,
    UPDATED_AT_FIELD,
)
from ..firebase.documents import utcnow
from ..firebase.repository import FirestoreRepository
from ..storage import ImageStore
from .schemas import LISTED_STATUSES, Book, BookCondition, BookCreate, BookStatus, BookUpdate

logger = logging.getLogger(__name__)

# Minimum thefuzz partial ratio for a fuzzy search hit
FUZZY_THRESHOLD = 70


class BookError(Exception):
    """Base exception for book operations."""

    pass


class BookNotFoundError(BookError):
    """Raised when a book document does not exist."""

    pass


class BookInUseError(BookError):
    """Raised when a book cannot be changed because a swap is pending on it."""

    pass


class MissingImageError(BookError):
    """Raised when a listing is created without an image file or URL."""

    pass


def _newest_first(books: list[Book]) -> list[Book]:
    return sorted(books, key=lambda b: b.created_at, reverse=True)


class BookRepository(FirestoreRepository[Book]):
    """Manages book listings and their cover images."""

    collection_name = BOOKS_COLLECTION
    model = Book

    def __init__(
        self,
        firebase: Optional[Firebase] = None,
        images: Optional[ImageStore] = None,
    ):
        """Initialize book repository.

        Args:
            firebase: Firebase instance
            images: Image store for cover uploads
        """
        super().__init__(firebase)
        self.images = images or ImageStore(self.firebase)

    # -------------------------------------------------------------------------
    # Create / Read
    # -------------------------------------------------------------------------

    def create_book(
        self,
        data: BookCreate,
        image_bytes: Optional[bytes] = None,
        image_url: Optional[str] = None,
    ) -> Book:
        """Create a new listing.

        An image URL is used as given; otherwise the image bytes are uploaded
        to Storage and the resulting download URL is stored.

        Args:
            data: Listing data
            image_bytes: Cover image to upload
            image_url: Existing cover image URL

        Returns:
            Created book

        Raises:
            MissingImageError: If neither an image nor a URL is given
        """
        if not image_url and not image_bytes:
            raise MissingImageError("Either an image file or an image URL must be provided")

        book_id = str(uuid4())
        if not image_url:
            image_url = self.images.upload_book_image(image_bytes, data.owner_id, book_id)

        book = Book(
            id=book_id,
            title=data.title,
            author=data.author,
            condition=data.condition,
            image_url=image_url,
            owner_id=data.owner_id,
            owner_name=data.owner_name,
            owner_email=data.owner_email,
            isbn=data.isbn,
            description=data.description,
            status=BookStatus.AVAILABLE,
        )

        self.collection.document(book.id).set(book.to_firestore())
        logger.info("Created book %s (%s) for owner %s", book.id, book.title, book.owner_id)
        return book

    def get_book(self, book_id: str) -> Optional[Book]:
        """Get a book by ID.

        Args:
            book_id: Book ID

        Returns:
            Book or None
        """
        logger.debug("Getting book %s", book_id)
        return self._get(book_id)

    def list_available_books(self) -> list[Book]:
        """List books open for browsing (available or pending), newest first."""
        query = self.collection.where(
            filter=FieldFilter(STATUS_FIELD, "in", [s.value for s in LISTED_STATUSES])
        )
        return _newest_first(self._parse_docs(query.stream()))

    def list_user_books(self, owner_id: str) -> list[Book]:
        """List every book owned by a user, newest first."""
        query = self.collection.where(filter=FieldFilter(OWNER_ID_FIELD, "==", owner_id))
        return _newest_first(self._parse_docs(query.stream()))

    def list_books_by_condition(self, condition: BookCondition) -> list[Book]:
        """List browsable books in a given condition, newest first."""
        query = self.collection.where(
            filter=FieldFilter(CONDITION_FIELD, "==", condition.value)
        ).where(filter=FieldFilter(STATUS_FIELD, "in", [s.value for s in LISTED_STATUSES]))
        return _newest_first(self._parse_docs(query.stream()))

    def search_books(self, query: str, fuzzy: bool = False) -> list[Book]:
        """Search browsable books by title or author.

        Args:
            query: Search text. Empty returns every browsable book.
            fuzzy: Rank by fuzzy similarity instead of substring match

        Returns:
            Matching books, newest first (best match first when fuzzy)
        """
        books = self.list_available_books()
        needle = query.strip().lower()
        if not needle:
            return books

        if not fuzzy:
            return [
                b for b in books
                if needle in b.title.lower() or needle in b.author.lower()
            ]

        scored = []
        for book in books:
            score = max(
                fuzz.partial_ratio(needle, book.title.lower()),
                fuzz.partial_ratio(needle, book.author.lower()),
            )
            if score >= FUZZY_THRESHOLD:
                scored.append((score, book))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [book for _, book in scored]

    def watch_available_books(self, callback: Callable[[list[Book]], None]) -> Any:
        """Call back with the browse listing every time it changes."""
        query = self.collection.where(
            filter=FieldFilter(STATUS_FIELD, "in", [s.value for s in LISTED_STATUSES])
        )
        return self._watch(query, callback, transform=_newest_first)

    # -------------------------------------------------------------------------
    # Update / Delete
    # -------------------------------------------------------------------------

    def update_book(self, book_id: str, data: BookUpdate) -> Book:
        """Apply a partial update to a listing.

        Args:
            book_id: Book ID
            data: Fields to change

        Returns:
            Updated book

        Raises:
            BookNotFoundError: If the book does not exist
        """
        updates = data.to_firestore()
        updates[UPDATED_AT_FIELD] = utcnow()

        try:
            self.collection.document(book_id).update(updates)
        except gexc.NotFound:
            raise BookNotFoundError(f"Book not found: {book_id}") from None

        logger.info("Updated book %s fields %s", book_id, sorted(updates))
        return self.get_book(book_id)

    def update_book_status(
        self,
        book_id: str,
        status: BookStatus,
        swap_id: Optional[str] = None,
    ) -> None:
        """Set a book's status.

        Returning a book to available clears its swap reference.

        Raises:
            BookNotFoundError: If the book does not exist
        """
        status = BookStatus.parse(status)
        updates: dict[str, Any] = {
            STATUS_FIELD: status.value,
            UPDATED_AT_FIELD: utcnow(),
        }
        if swap_id is not None:
            updates[SWAP_ID_FIELD] = swap_id
        elif status == BookStatus.AVAILABLE:
            updates[SWAP_ID_FIELD] = DELETE_FIELD

        try:
            self.collection.document(book_id).update(updates)
        except gexc.NotFound:
            raise BookNotFoundError(f"Book not found: {book_id}") from None

        logger.info("Book %s status -> %s", book_id, status.value)

    def delete_book(self, book_id: str) -> None:
        """Delete a listing and, best effort, its cover image.

        Raises:
            BookNotFoundError: If the book does not exist
            BookInUseError: If a swap is pending on the book
        """
        book = self.get_book(book_id)
        if book is None:
            raise BookNotFoundError(f"Book not found: {book_id}")

        if book.status == BookStatus.PENDING:
            raise BookInUseError(
                "Cannot delete book that is in a pending swap. "
                "Please cancel the swap first."
            )

        batch = self.db.batch()
        batch.delete(self.collection.document(book_id))
        batch.commit()
        logger.info("Deleted book %s", book_id)

        if book.image_url:
            try:
                self.images.delete_image(book.image_url)
            except (ValueError, gexc.GoogleAPIError) as e:
                logger.warning("Could not delete image for book %s: %s", book_id, e)
