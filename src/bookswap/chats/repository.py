"""Chat repository for conversations and their messages."""

import logging
from typing import Any, Callable, Optional
from uuid import uuid4

from google.api_core import exceptions as gexc
from google.cloud.firestore import FieldFilter, Increment

from ..books.schemas import Book
from ..firebase.constants import (
    CHAT_ID_FIELD,
    CHATS_COLLECTION,
    IS_READ_FIELD,
    LAST_MESSAGE_ID_FIELD,
    LAST_MESSAGE_SENDER_ID_FIELD,
    LAST_MESSAGE_TEXT_FIELD,
    LAST_MESSAGE_TIME_FIELD,
    MESSAGES_COLLECTION,
    PARTICIPANT_IDS_FIELD,
    UNREAD_COUNTS_FIELD,
    UPDATED_AT_FIELD,
)
from ..firebase.documents import utcnow
from ..firebase.repository import FirestoreRepository
from ..users.schemas import UserProfile
from .schemas import Chat, ChatParticipant, Message

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Base exception for chat operations."""

    pass


class ChatNotFoundError(ChatError):
    """Raised when a chat document does not exist."""

    pass


def _by_recent_activity(chats: list[Chat]) -> list[Chat]:
    return sorted(chats, key=lambda c: c.updated_at, reverse=True)


def _oldest_first(messages: list[Message]) -> list[Message]:
    return sorted(messages, key=lambda m: m.timestamp)


class ChatRepository(FirestoreRepository[Chat]):
    """Manages chats and the messages exchanged in them."""

    collection_name = CHATS_COLLECTION
    model = Chat

    @property
    def messages(self) -> Any:
        """Reference to the messages collection."""
        return self.db.collection(MESSAGES_COLLECTION)

    def _unread_path(self, user_id: str) -> str:
        return f"{UNREAD_COUNTS_FIELD}.{user_id}"

    # -------------------------------------------------------------------------
    # Chats
    # -------------------------------------------------------------------------

    def get_or_create_chat(
        self,
        first: ChatParticipant,
        second: ChatParticipant,
        book_id: Optional[str] = None,
        book_title: Optional[str] = None,
        book_image_url: Optional[str] = None,
    ) -> Chat:
        """Return the chat between two users, creating it if needed.

        An existing chat is returned unchanged, whatever book it was
        opened from.

        Raises:
            ChatError: If both participants are the same user
        """
        if first.uid == second.uid:
            raise ChatError("You cannot start a chat with yourself")

        existing = self.find_chat_between_users(first.uid, second.uid)
        if existing is not None:
            logger.debug("Found existing chat %s", existing.id)
            return existing

        chat = Chat.between(
            str(uuid4()),
            first,
            second,
            book_id=book_id,
            book_title=book_title,
            book_image_url=book_image_url,
        )
        self.collection.document(chat.id).set(chat.to_firestore())
        logger.info("Created chat %s between %s", chat.id, chat.participant_ids)
        return chat

    def get_or_create_chat_for_book(self, current_user: UserProfile, book: Book) -> Chat:
        """Open a chat with a book's owner about that book."""
        owner = ChatParticipant(uid=book.owner_id, name=book.owner_name, email=book.owner_email)
        return self.get_or_create_chat(
            ChatParticipant.from_profile(current_user),
            owner,
            book_id=book.id,
            book_title=book.title,
            book_image_url=book.image_url,
        )

    def get_chat(self, chat_id: str) -> Optional[Chat]:
        """Get a chat by ID, None if it does not exist."""
        return self._get(chat_id)

    def find_chat_between_users(self, user_id1: str, user_id2: str) -> Optional[Chat]:
        """Find the chat for a pair of users, in either order."""
        participants = sorted([user_id1, user_id2])
        query = self.collection.where(
            filter=FieldFilter(PARTICIPANT_IDS_FIELD, "==", participants)
        ).limit(1)
        chats = self._parse_docs(query.stream())
        return chats[0] if chats else None

    def list_user_chats(self, user_id: str) -> list[Chat]:
        """Chats the user takes part in, most recently active first."""
        query = self.collection.where(
            filter=FieldFilter(PARTICIPANT_IDS_FIELD, "array_contains", user_id)
        )
        return _by_recent_activity(self._parse_docs(query.stream()))

    def watch_user_chats(self, user_id: str, callback: Callable[[list[Chat]], None]) -> Any:
        """Call back with the user's chat list every time it changes."""
        query = self.collection.where(
            filter=FieldFilter(PARTICIPANT_IDS_FIELD, "array_contains", user_id)
        )
        return self._watch(query, callback, transform=_by_recent_activity)

    def update_last_message(self, chat_id: str, message: Message) -> None:
        """Record a message as the chat's latest.

        Raises:
            ChatNotFoundError: If the chat does not exist
        """
        try:
            self.collection.document(chat_id).update(self._last_message_fields(message))
        except gexc.NotFound:
            raise ChatNotFoundError(f"Chat not found: {chat_id}") from None

    def _last_message_fields(self, message: Message) -> dict[str, Any]:
        return {
            LAST_MESSAGE_ID_FIELD: message.id,
            LAST_MESSAGE_TEXT_FIELD: message.text,
            LAST_MESSAGE_TIME_FIELD: message.timestamp,
            LAST_MESSAGE_SENDER_ID_FIELD: message.sender_id,
            UPDATED_AT_FIELD: message.timestamp,
        }

    def increment_unread_count(self, chat_id: str, user_id: str) -> None:
        """Atomically add one to a participant's unread count.

        Raises:
            ChatNotFoundError: If the chat does not exist
        """
        try:
            self.collection.document(chat_id).update({self._unread_path(user_id): Increment(1)})
        except gexc.NotFound:
            raise ChatNotFoundError(f"Chat not found: {chat_id}") from None

    def reset_unread_count(self, chat_id: str, user_id: str) -> None:
        """Zero a participant's unread count.

        Raises:
            ChatNotFoundError: If the chat does not exist
        """
        try:
            self.collection.document(chat_id).update({self._unread_path(user_id): 0})
        except gexc.NotFound:
            raise ChatNotFoundError(f"Chat not found: {chat_id}") from None

    def total_unread_count(self, user_id: str) -> int:
        """Unread messages for the user across all their chats."""
        return sum(chat.unread_count(user_id) for chat in self.list_user_chats(user_id))

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def list_messages(self, chat_id: str) -> list[Message]:
        """Messages in a chat, oldest first."""
        query = self.messages.where(filter=FieldFilter(CHAT_ID_FIELD, "==", chat_id))
        return _oldest_first(self._parse_messages(query.stream()))

    def watch_messages(self, chat_id: str, callback: Callable[[list[Message]], None]) -> Any:
        """Call back with a chat's messages, oldest first, on every change."""
        query = self.messages.where(filter=FieldFilter(CHAT_ID_FIELD, "==", chat_id))

        def on_snapshot(snapshots, changes, read_time):
            callback(_oldest_first(self._parse_messages(snapshots)))

        return query.on_snapshot(on_snapshot)

    def _parse_messages(self, snapshots: Any) -> list[Message]:
        messages = []
        for snapshot in snapshots:
            if not snapshot.exists:
                continue
            try:
                messages.append(Message.from_firestore(snapshot))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping malformed message %s: %s", snapshot.id, e)
        return messages

    def send_message(
        self,
        chat_id: str,
        sender_id: str,
        sender_name: str,
        text: str,
    ) -> Message:
        """Send a message in a chat.

        The message, the chat's last-message fields and the recipient's
        unread count are written in one batch.

        Returns:
            The stored message

        Raises:
            ChatError: If the text is blank or the sender is not in the chat
            ChatNotFoundError: If the chat does not exist
        """
        text = (text or "").strip()
        if not text:
            raise ChatError("Message cannot be empty")

        chat = self.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(f"Chat not found: {chat_id}")
        if not chat.has_participant(sender_id):
            raise ChatError(f"User {sender_id} is not a participant in chat {chat_id}")

        recipient_id = chat.other_participant_id(sender_id)
        message = Message(
            id=str(uuid4()),
            chat_id=chat_id,
            sender_id=sender_id,
            sender_name=sender_name,
            text=text,
            timestamp=utcnow(),
        )

        chat_updates = self._last_message_fields(message)
        chat_updates[self._unread_path(recipient_id)] = Increment(1)

        batch = self.db.batch()
        batch.set(self.messages.document(message.id), message.to_firestore())
        batch.update(self.collection.document(chat_id), chat_updates)
        batch.commit()

        logger.info("Message %s sent in chat %s", message.id, chat_id)
        return message

    def mark_messages_as_read(self, chat_id: str, user_id: str) -> int:
        """Mark the other party's unread messages as read for ``user_id``.

        The unread count is reset even when nothing was unread, to heal a
        counter that drifted.

        Returns:
            Number of messages marked read

        Raises:
            ChatNotFoundError: If the chat does not exist
            ChatError: If ``user_id`` is not in the chat
        """
        chat = self.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(f"Chat not found: {chat_id}")
        if not chat.has_participant(user_id):
            raise ChatError(f"User {user_id} is not a participant in chat {chat_id}")

        unread = [
            m for m in self.list_messages(chat_id)
            if m.sender_id != user_id and not m.is_read
        ]

        batch = self.db.batch()
        for message in unread:
            batch.update(self.messages.document(message.id), {IS_READ_FIELD: True})
        batch.update(self.collection.document(chat_id), {self._unread_path(user_id): 0})
        batch.commit()

        logger.info("Marked %d message(s) read in chat %s for %s", len(unread), chat_id, user_id)
        return len(unread)
