"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the bookswap application: an
in-memory Firestore and Storage wired into a ``Firebase`` instance, the
repositories built on it, and sample users and listings.
"""

import os
from typing import Callable, Generator

import pytest

from bookswap.books import Book, BookCreate, BookRepository
from bookswap.chats import ChatRepository
from bookswap.config import Config, reset_config
from bookswap.firebase import Firebase, reset_firebase, set_firebase
from bookswap.storage import ImageStore
from bookswap.swaps import SwapOfferCreate, SwapRepository
from bookswap.users import UserProfile, UserRepository
from fakes import FakeBucket, FakeFirestoreClient

TEST_IMAGE_URL = "https://example.com/covers/test.jpg"


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate each test from BOOKSWAP_* variables and global singletons."""
    for name in list(os.environ):
        if name.startswith("BOOKSWAP_") or name in (
            "GOOGLE_CLOUD_PROJECT",
            "GOOGLE_APPLICATION_CREDENTIALS",
        ):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
    reset_firebase()


@pytest.fixture
def config() -> Config:
    """Configuration for a test project."""
    return Config(
        project_id="bookswap-test",
        credentials_path=None,
        storage_bucket="bookswap-test.appspot.com",
        api_key="test-api-key",
        auth_timeout=5,
        require_verified_email=True,
        user_id=None,
        log_level="WARNING",
    )


# ============================================================================
# Firebase Fixtures
# ============================================================================


@pytest.fixture
def fake_db() -> FakeFirestoreClient:
    """Empty in-memory Firestore."""
    return FakeFirestoreClient()


@pytest.fixture
def fake_bucket() -> FakeBucket:
    """Empty in-memory Storage bucket."""
    return FakeBucket("bookswap-test.appspot.com")


@pytest.fixture
def firebase(config: Config, fake_db: FakeFirestoreClient, fake_bucket: FakeBucket) -> Firebase:
    """Firebase instance backed by the fakes, installed as the global one."""
    instance = Firebase(config=config, firestore_client=fake_db, bucket=fake_bucket)
    set_firebase(instance)
    return instance


@pytest.fixture
def images(firebase: Firebase) -> ImageStore:
    return ImageStore(firebase)


@pytest.fixture
def books(firebase: Firebase, images: ImageStore) -> BookRepository:
    return BookRepository(firebase, images=images)


@pytest.fixture
def swaps(firebase: Firebase, books: BookRepository) -> SwapRepository:
    return SwapRepository(firebase, books=books)


@pytest.fixture
def users(firebase: Firebase) -> UserRepository:
    return UserRepository(firebase)


@pytest.fixture
def chats(firebase: Firebase) -> ChatRepository:
    return ChatRepository(firebase)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def alice(users: UserRepository) -> UserProfile:
    """A stored user who owns books."""
    return users.create_user(
        UserProfile(uid="alice", email="alice@example.com", display_name="Alice")
    )


@pytest.fixture
def bob(users: UserRepository) -> UserProfile:
    """A stored user who makes offers."""
    return users.create_user(
        UserProfile(uid="bob", email="bob@example.com", display_name="Bob")
    )


@pytest.fixture
def carol(users: UserRepository) -> UserProfile:
    """A second stored user who makes offers."""
    return users.create_user(
        UserProfile(uid="carol", email="carol@example.com", display_name="Carol")
    )


@pytest.fixture
def sample_book_data(alice: UserProfile) -> BookCreate:
    """Listing data for a book owned by Alice."""
    return BookCreate(
        title="The Left Hand of Darkness",
        author="Ursula K. Le Guin",
        condition="Good",
        owner_id=alice.uid,
        owner_name=alice.display_name,
        owner_email=alice.email,
        isbn="978-0-441-47812-5",
        description="Paperback, light wear on the spine.",
    )


@pytest.fixture
def make_book(books: BookRepository, alice: UserProfile) -> Callable[..., Book]:
    """Factory that lists a book for a given owner (default Alice)."""

    def _make(title: str = "Dune", author: str = "Frank Herbert", owner: UserProfile = alice,
              condition: str = "Like New") -> Book:
        data = BookCreate(
            title=title,
            author=author,
            condition=condition,
            owner_id=owner.uid,
            owner_name=owner.display_name,
            owner_email=owner.email,
        )
        return books.create_book(data, image_url=TEST_IMAGE_URL)

    return _make


@pytest.fixture
def alice_book(make_book: Callable[..., Book]) -> Book:
    """A listed book owned by Alice."""
    return make_book()


@pytest.fixture
def make_offer(swaps: SwapRepository) -> Callable:
    """Factory that makes a swap offer from a user on a book."""

    def _offer(book: Book, sender: UserProfile, message: str = None):
        return swaps.create_swap_offer(SwapOfferCreate.for_book(book, sender, message))

    return _offer
