"""Swap offers and their lifecycle."""

from .lifecycle import (
    BookUnavailableError,
    InvalidSwapTransitionError,
    SwapError,
    SwapNotFoundError,
    SwapPermissionError,
    check_transition,
)
from .repository import SwapRepository
from .schemas import Swap, SwapOfferCreate, SwapStats, SwapStatus

__all__ = [
    "SwapRepository",
    "Swap",
    "SwapOfferCreate",
    "SwapStats",
    "SwapStatus",
    "SwapError",
    "SwapNotFoundError",
    "SwapPermissionError",
    "InvalidSwapTransitionError",
    "BookUnavailableError",
    "check_transition",
]
