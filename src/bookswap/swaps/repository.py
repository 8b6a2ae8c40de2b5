"""Swap repository: offers and their lifecycle over the ``swaps`` collection.

Every lifecycle trigger writes the swap document(s) and the book document in
one Firestore batch, so a reader never sees a settled swap beside a book in
the wrong status.
"""

import logging
from typing import Any, Callable, Optional

from google.cloud.firestore import DELETE_FIELD, FieldFilter, Query

from ..books.repository import BookNotFoundError, BookRepository
from ..books.schemas import Book, BookStatus
from ..firebase.client import Firebase
from ..firebase.constants import (
    BOOK_ID_FIELD,
    CREATED_AT_FIELD,
    RECIPIENT_ID_FIELD,
    SENDER_ID_FIELD,
    STATUS_FIELD,
    SWAP_ID_FIELD,
    SWAPS_COLLECTION,
    UPDATED_AT_FIELD,
)
from ..firebase.documents import utcnow
from ..firebase.repository import FirestoreRepository
from .lifecycle import (
    BookUnavailableError,
    SwapError,
    SwapNotFoundError,
    SwapPermissionError,
    book_status_after,
    can_receive_offer,
    check_transition,
)
from .schemas import Swap, SwapOfferCreate, SwapStats, SwapStatus

logger = logging.getLogger(__name__)


def _newest_first(swaps: list[Swap]) -> list[Swap]:
    return sorted(swaps, key=lambda s: s.created_at, reverse=True)


def _merge(*groups: list[Swap]) -> list[Swap]:
    """Union swap lists by ID, newest first."""
    by_id: dict[str, Swap] = {}
    for group in groups:
        for swap in group:
            by_id[swap.id] = swap
    return _newest_first(list(by_id.values()))


class SwapRepository(FirestoreRepository[Swap]):
    """Manages swap offers and keeps book status in step with them."""

    collection_name = SWAPS_COLLECTION
    model = Swap

    def __init__(
        self,
        firebase: Optional[Firebase] = None,
        books: Optional[BookRepository] = None,
    ):
        """Initialize swap repository.

        Args:
            firebase: Firebase instance
            books: Book repository used to read the offered book
        """
        super().__init__(firebase)
        self.books = books or BookRepository(self.firebase)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_swap_offer(self, data: SwapOfferCreate) -> Swap:
        """Offer a swap on a book.

        Writes the pending swap and marks the book pending in one batch.

        Args:
            data: Offer details

        Returns:
            The new pending swap

        Raises:
            BookNotFoundError: If the book does not exist
            BookUnavailableError: If the book is swapped or the sender owns it
            SwapError: If the sender already has a pending offer on the book
        """
        book = self.books.get_book(data.book_id)
        if book is None:
            raise BookNotFoundError(f"Book not found: {data.book_id}")

        if data.sender_id == book.owner_id:
            raise BookUnavailableError("You cannot offer a swap on your own book")
        if not can_receive_offer(book.status):
            raise BookUnavailableError(
                f"'{book.title}' is {book.status.value} and cannot take new offers"
            )
        if data.recipient_id != book.owner_id:
            raise SwapError("Swap offers must be sent to the book's owner")

        for existing in self.get_pending_swaps_for_book(book.id):
            if existing.sender_id == data.sender_id:
                raise SwapError("You already have a pending offer on this book")

        swap = data.to_swap()

        batch = self.db.batch()
        batch.set(self.collection.document(swap.id), swap.to_firestore())
        batch.update(
            self.books.collection.document(book.id),
            {
                STATUS_FIELD: BookStatus.PENDING.value,
                SWAP_ID_FIELD: swap.id,
                UPDATED_AT_FIELD: swap.created_at,
            },
        )
        batch.commit()

        logger.info(
            "Swap %s offered by %s on book %s", swap.id, swap.sender_id, swap.book_id
        )
        return swap

    def update_swap_status(
        self,
        swap_id: str,
        status: SwapStatus,
        actor_id: Optional[str] = None,
    ) -> Swap:
        """Settle a pending swap into a terminal status.

        Accepting goes through :meth:`accept_swap`. Rejecting or cancelling
        returns a pending book to available and clears its ``swapId``, even
        when other offers on it are still pending.

        Args:
            swap_id: Swap ID
            status: Target status
            actor_id: User performing the change, checked against the swap

        Returns:
            The updated swap

        Raises:
            SwapNotFoundError: If the swap does not exist
            InvalidSwapTransitionError: If the swap is not pending
            SwapPermissionError: If the actor may not make this change
        """
        status = SwapStatus.parse(status)
        if status == SwapStatus.ACCEPTED:
            return self.accept_swap(swap_id, actor_id=actor_id)

        swap = self._require_swap(swap_id)
        check_transition(swap.id, swap.status, status)
        self._check_actor(swap, status, actor_id)

        now = utcnow()
        batch = self.db.batch()
        batch.update(
            self.collection.document(swap.id),
            {STATUS_FIELD: status.value, UPDATED_AT_FIELD: now},
        )

        book = self.books.get_book(swap.book_id)
        book_updates = self._release_book(book, status, now)
        if book_updates:
            batch.update(self.books.collection.document(book.id), book_updates)
        elif book is None:
            logger.warning("Book %s for swap %s no longer exists", swap.book_id, swap.id)

        batch.commit()

        logger.info("Swap %s %s -> %s", swap.id, swap.status.value, status.value)
        return swap.model_copy(update={"status": status, "updated_at": now})

    def accept_swap(self, swap_id: str, actor_id: Optional[str] = None) -> Swap:
        """Accept a pending offer.

        In one batch: the swap becomes accepted, the book becomes swapped, and
        every other pending offer on the same book is rejected.

        Raises:
            SwapNotFoundError: If the swap does not exist
            InvalidSwapTransitionError: If the swap is not pending
            SwapPermissionError: If the actor is not the book's owner
            BookUnavailableError: If the book no longer exists or is swapped
        """
        swap = self._require_swap(swap_id)
        check_transition(swap.id, swap.status, SwapStatus.ACCEPTED)
        self._check_actor(swap, SwapStatus.ACCEPTED, actor_id)

        book = self.books.get_book(swap.book_id)
        if book is None:
            raise BookUnavailableError(f"Book for swap {swap.id} no longer exists")
        if book.status == BookStatus.SWAPPED:
            raise BookUnavailableError(f"'{book.title}' has already been swapped")

        siblings = [s for s in self.get_pending_swaps_for_book(book.id) if s.id != swap.id]

        now = utcnow()
        batch = self.db.batch()
        batch.update(
            self.collection.document(swap.id),
            {STATUS_FIELD: SwapStatus.ACCEPTED.value, UPDATED_AT_FIELD: now},
        )
        batch.update(
            self.books.collection.document(book.id),
            {
                STATUS_FIELD: book_status_after(SwapStatus.ACCEPTED).value,
                SWAP_ID_FIELD: swap.id,
                UPDATED_AT_FIELD: now,
            },
        )
        for sibling in siblings:
            batch.update(
                self.collection.document(sibling.id),
                {STATUS_FIELD: SwapStatus.REJECTED.value, UPDATED_AT_FIELD: now},
            )
        batch.commit()

        logger.info(
            "Swap %s accepted; book %s swapped, %d competing offer(s) rejected",
            swap.id,
            book.id,
            len(siblings),
        )
        return swap.model_copy(update={"status": SwapStatus.ACCEPTED, "updated_at": now})

    def reject_swap(self, swap_id: str, actor_id: Optional[str] = None) -> Swap:
        """Reject a pending offer (book owner)."""
        return self.update_swap_status(swap_id, SwapStatus.REJECTED, actor_id=actor_id)

    def cancel_swap(self, swap_id: str, actor_id: Optional[str] = None) -> Swap:
        """Withdraw a pending offer (sender)."""
        return self.update_swap_status(swap_id, SwapStatus.CANCELLED, actor_id=actor_id)

    def _require_swap(self, swap_id: str) -> Swap:
        swap = self.get_swap(swap_id)
        if swap is None:
            raise SwapNotFoundError(f"Swap not found: {swap_id}")
        return swap

    def _check_actor(self, swap: Swap, status: SwapStatus, actor_id: Optional[str]) -> None:
        """The recipient accepts or rejects; the sender cancels."""
        if actor_id is None:
            return
        if status == SwapStatus.CANCELLED:
            allowed = swap.sender_id
        else:
            allowed = swap.recipient_id
        if actor_id != allowed:
            raise SwapPermissionError(
                f"User {actor_id} cannot mark swap {swap.id} as {status.value}"
            )

    def _release_book(
        self,
        book: Optional[Book],
        status: SwapStatus,
        now: Any,
    ) -> dict[str, Any]:
        """Book field updates for a rejected or cancelled swap."""
        if book is None or book.status != BookStatus.PENDING:
            return {}

        return {
            STATUS_FIELD: book_status_after(status).value,
            SWAP_ID_FIELD: DELETE_FIELD,
            UPDATED_AT_FIELD: now,
        }

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_swap(self, swap_id: str) -> Optional[Swap]:
        """Get a swap by ID, None if it does not exist."""
        return self._get(swap_id)

    def list_sent_swaps(self, user_id: str) -> list[Swap]:
        """Offers the user made, newest first."""
        query = self.collection.where(
            filter=FieldFilter(SENDER_ID_FIELD, "==", user_id)
        ).order_by(CREATED_AT_FIELD, direction=Query.DESCENDING)
        return self._parse_docs(query.stream())

    def list_received_swaps(self, user_id: str) -> list[Swap]:
        """Offers made on the user's books, newest first."""
        query = self.collection.where(
            filter=FieldFilter(RECIPIENT_ID_FIELD, "==", user_id)
        ).order_by(CREATED_AT_FIELD, direction=Query.DESCENDING)
        return self._parse_docs(query.stream())

    def list_user_swaps(
        self,
        user_id: str,
        status: Optional[SwapStatus] = None,
    ) -> list[Swap]:
        """Every swap the user sent or received, newest first.

        Args:
            user_id: User ID
            status: Only return swaps in this status
        """
        swaps = _merge(self.list_sent_swaps(user_id), self.list_received_swaps(user_id))
        if status is not None:
            status = SwapStatus.parse(status)
            swaps = [s for s in swaps if s.status == status]
        return swaps

    def get_pending_swaps_for_book(self, book_id: str) -> list[Swap]:
        """Pending offers on a book, newest first."""
        query = self.collection.where(
            filter=FieldFilter(BOOK_ID_FIELD, "==", book_id)
        ).where(filter=FieldFilter(STATUS_FIELD, "==", SwapStatus.PENDING.value))
        return _newest_first(self._parse_docs(query.stream()))

    def has_active_swap_for_book(self, book_id: str) -> bool:
        """Whether any offer on the book is still pending."""
        query = (
            self.collection.where(filter=FieldFilter(BOOK_ID_FIELD, "==", book_id))
            .where(filter=FieldFilter(STATUS_FIELD, "==", SwapStatus.PENDING.value))
            .limit(1)
        )
        return any(snapshot.exists for snapshot in query.stream())

    def get_user_swap_stats(self, user_id: str) -> SwapStats:
        """Count a user's swaps by status and direction."""
        sent = self.list_sent_swaps(user_id)
        received = self.list_received_swaps(user_id)

        stats = SwapStats(sent=len(sent), received=len(received))
        for swap in _merge(sent, received):
            field = swap.status.value
            setattr(stats, field, getattr(stats, field) + 1)
        return stats

    def watch_user_swaps(self, user_id: str, callback: Callable[[list[Swap]], None]) -> list[Any]:
        """Call back with the user's merged swap list whenever either side changes.

        Returns:
            The two watch handles (sent and received)
        """
        latest: dict[str, list[Swap]] = {"sent": [], "received": []}

        def updater(key: str) -> Callable[[list[Swap]], None]:
            def on_change(swaps: list[Swap]) -> None:
                latest[key] = swaps
                callback(_merge(latest["sent"], latest["received"]))

            return on_change

        sent_query = self.collection.where(filter=FieldFilter(SENDER_ID_FIELD, "==", user_id))
        received_query = self.collection.where(
            filter=FieldFilter(RECIPIENT_ID_FIELD, "==", user_id)
        )
        return [
            self._watch(sent_query, updater("sent")),
            self._watch(received_query, updater("received")),
        ]

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete_swap(self, swap_id: str) -> None:
        """Delete a settled swap record.

        Raises:
            SwapNotFoundError: If the swap does not exist
            SwapError: If the swap is still pending
        """
        swap = self._require_swap(swap_id)
        if swap.is_pending:
            raise SwapError("Cancel or reject a pending swap before deleting it")
        self.collection.document(swap_id).delete()
        logger.info("Deleted swap %s", swap_id)
