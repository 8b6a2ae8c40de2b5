"""Swap lifecycle rules.

A swap is created ``pending`` and leaves that state exactly once::

    (none)   --offer-->   pending          book: available -> pending
    pending  --accept-->  accepted         book: pending   -> swapped
    pending  --accept of a sibling--> rejected   (book unchanged)
    pending  --reject-->  rejected         book: pending   -> available
    pending  --cancel-->  cancelled        book: pending   -> available

``accepted``, ``rejected`` and ``cancelled`` are terminal.
"""

from typing import Optional

from ..books.schemas import BookStatus
from .schemas import SwapStatus


class SwapError(Exception):
    """Base exception for swap operations."""

    pass


class SwapNotFoundError(SwapError):
    """Raised when a swap document does not exist."""

    pass


class InvalidSwapTransitionError(SwapError):
    """Raised when a swap is asked to move out of a terminal status."""

    def __init__(self, swap_id: str, current: SwapStatus, target: SwapStatus):
        self.swap_id = swap_id
        self.current = current
        self.target = target
        super().__init__(
            f"Swap {swap_id} is {current.value} and cannot become {target.value}"
        )


class BookUnavailableError(SwapError):
    """Raised when an offer targets a book that cannot take one."""

    pass


class SwapPermissionError(SwapError):
    """Raised when a user acts on a swap they are not party to."""

    pass


TERMINAL_STATUSES = frozenset(
    {SwapStatus.ACCEPTED, SwapStatus.REJECTED, SwapStatus.CANCELLED}
)

# Where the book goes when its swap settles into each terminal status
BOOK_STATUS_AFTER = {
    SwapStatus.ACCEPTED: BookStatus.SWAPPED,
    SwapStatus.REJECTED: BookStatus.AVAILABLE,
    SwapStatus.CANCELLED: BookStatus.AVAILABLE,
}


def check_transition(swap_id: str, current: SwapStatus, target: SwapStatus) -> None:
    """Ensure a swap may move from ``current`` to ``target``.

    Raises:
        InvalidSwapTransitionError: Unless ``current`` is pending and
            ``target`` is terminal
    """
    if current != SwapStatus.PENDING or target not in TERMINAL_STATUSES:
        raise InvalidSwapTransitionError(swap_id, current, target)


def book_status_after(target: SwapStatus) -> Optional[BookStatus]:
    """Book status implied by a swap settling into ``target``."""
    return BOOK_STATUS_AFTER.get(target)


def can_receive_offer(status: BookStatus) -> bool:
    """Whether a book in this status can take a new swap offer.

    Pending books stay open: several offers may wait on one book until the
    owner accepts one of them.
    """
    return status in (BookStatus.AVAILABLE, BookStatus.PENDING)
