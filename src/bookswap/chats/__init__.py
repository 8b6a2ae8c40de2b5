"""Chats between users and the messages in them."""

from .repository import ChatError, ChatNotFoundError, ChatRepository
from .schemas import Chat, ChatParticipant, Message

__all__ = [
    "ChatRepository",
    "ChatError",
    "ChatNotFoundError",
    "Chat",
    "ChatParticipant",
    "Message",
]
