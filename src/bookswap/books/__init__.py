"""Book listings module.

Provides functionality for:
- Listing books with a cover image (uploaded or linked)
- Browsing and searching available listings
- Status changes driven by the swap lifecycle
"""

from .repository import (
    BookError,
    BookInUseError,
    BookNotFoundError,
    BookRepository,
    MissingImageError,
)
from .schemas import Book, BookCondition, BookCreate, BookStatus, BookUpdate

__all__ = [
    "BookRepository",
    "BookError",
    "BookInUseError",
    "BookNotFoundError",
    "MissingImageError",
    "Book",
    "BookCondition",
    "BookCreate",
    "BookStatus",
    "BookUpdate",
]
