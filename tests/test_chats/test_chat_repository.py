"""Tests for ChatRepository."""

from datetime import datetime, timedelta, timezone

import pytest

from bookswap.chats import Chat, ChatError, ChatNotFoundError, ChatParticipant, Message


@pytest.fixture
def chat(chats, alice, bob):
    """A chat between Bob and Alice about nothing in particular."""
    return chats.get_or_create_chat(
        ChatParticipant.from_profile(bob),
        ChatParticipant.from_profile(alice),
    )


class TestChatModel:
    """Tests for the Chat model helpers."""

    def test_between_sorts_participants(self):
        """Test participants are stored in sorted-ID order."""
        chat = Chat.between(
            "c1",
            ChatParticipant(uid="zed", name="Zed", email="z@example.com"),
            ChatParticipant(uid="amy", name="Amy", email="a@example.com", avatar="a.png"),
        )
        assert chat.participant_ids == ["amy", "zed"]
        assert chat.participant_names == ["Amy", "Zed"]
        assert chat.participant_emails == ["a@example.com", "z@example.com"]
        assert chat.participant_avatars == ["a.png", None]

    def test_other_participant(self):
        """Test looking up the other side of a chat."""
        chat = Chat.between(
            "c1",
            ChatParticipant(uid="amy", name="Amy", avatar="a.png"),
            ChatParticipant(uid="zed", name="Zed"),
        )
        assert chat.other_participant_id("amy") == "zed"
        assert chat.other_participant_name("zed") == "Amy"
        assert chat.other_participant_avatar("zed") == "a.png"
        assert chat.other_participant_avatar("amy") is None
        assert chat.unread_count("amy") == 0

    def test_missing_lists_default(self):
        """Test stored chats without avatars or counts parse."""
        chat = Chat.from_dict({
            "id": "c1",
            "participantIds": ["a", "b"],
            "participantNames": ["A", "B"],
            "participantEmails": ["", ""],
            "participantAvatars": None,
            "unreadCounts": None,
            "createdAt": "2025-01-01T00:00:00Z",
            "updatedAt": "2025-01-01T00:00:00Z",
        })
        assert chat.participant_avatars == []
        assert chat.unread_counts == {}
        assert chat.other_participant_avatar("a") is None


class TestGetOrCreateChat:
    """Tests for opening chats."""

    def test_creates_chat(self, chats, fake_db, chat):
        """Test a new chat document is written."""
        doc = fake_db.store[f"chats/{chat.id}"]
        assert doc["participantIds"] == ["alice", "bob"]
        assert doc["participantNames"] == ["Alice", "Bob"]

    def test_reuses_chat_in_either_order(self, chats, alice, bob, chat):
        """Test the same pair always maps to one chat."""
        again = chats.get_or_create_chat(
            ChatParticipant.from_profile(alice),
            ChatParticipant.from_profile(bob),
        )
        assert again.id == chat.id
        assert len([p for p in chats.db.store if p.startswith("chats/")]) == 1

    def test_chat_with_self_refused(self, chats, alice):
        """Test a user cannot open a chat with themselves."""
        me = ChatParticipant.from_profile(alice)
        with pytest.raises(ChatError):
            chats.get_or_create_chat(me, me)

    def test_chat_for_book(self, chats, bob, alice_book):
        """Test opening a chat with a book's owner records the book."""
        chat = chats.get_or_create_chat_for_book(bob, alice_book)

        assert chat.participant_ids == ["alice", "bob"]
        assert chat.book_id == alice_book.id
        assert chat.book_title == "Dune"
        assert chat.other_participant_name("bob") == "Alice"

    def test_find_chat_between_users(self, chats, chat):
        """Test finding a chat by its participants."""
        assert chats.find_chat_between_users("alice", "bob").id == chat.id
        assert chats.find_chat_between_users("alice", "carol") is None

    def test_list_user_chats_recent_first(self, chats, alice, bob, carol):
        """Test a user's chats are ordered by latest activity."""
        with_bob = chats.get_or_create_chat(
            ChatParticipant.from_profile(alice), ChatParticipant.from_profile(bob)
        )
        with_carol = chats.get_or_create_chat(
            ChatParticipant.from_profile(alice), ChatParticipant.from_profile(carol)
        )
        chats.db.store[f"chats/{with_bob.id}"]["updatedAt"] = datetime(2025, 1, 2, tzinfo=timezone.utc)
        chats.db.store[f"chats/{with_carol.id}"]["updatedAt"] = datetime(2025, 1, 1, tzinfo=timezone.utc)

        assert [c.id for c in chats.list_user_chats("alice")] == [with_bob.id, with_carol.id]
        assert [c.id for c in chats.list_user_chats("carol")] == [with_carol.id]


class TestMessages:
    """Tests for sending and reading messages."""

    def test_send_message(self, chats, fake_db, chat, bob):
        """Test sending stores the message and updates the chat."""
        message = chats.send_message(chat.id, "bob", "Bob", "  Is Dune still available?  ")

        assert message.text == "Is Dune still available?"
        assert message.chat_id == chat.id
        assert not message.is_read

        stored = chats.get_chat(chat.id)
        assert stored.last_message_id == message.id
        assert stored.last_message_text == "Is Dune still available?"
        assert stored.last_message_sender_id == "bob"
        assert stored.unread_count("alice") == 1
        assert stored.unread_count("bob") == 0

    def test_send_is_one_batch(self, chats, fake_db, chat):
        """Test the message and chat updates commit together."""
        before = len(fake_db.commits)
        chats.send_message(chat.id, "bob", "Bob", "Hi")
        assert len(fake_db.commits) == before + 1

    def test_unread_counts_accumulate(self, chats, chat):
        """Test each message bumps the recipient's count."""
        chats.send_message(chat.id, "bob", "Bob", "Hi")
        chats.send_message(chat.id, "bob", "Bob", "Still there?")
        chats.send_message(chat.id, "alice", "Alice", "Yes!")

        stored = chats.get_chat(chat.id)
        assert stored.unread_count("alice") == 2
        assert stored.unread_count("bob") == 1

    def test_empty_message_refused(self, chats, chat):
        """Test blank text is not sent."""
        with pytest.raises(ChatError, match="empty"):
            chats.send_message(chat.id, "bob", "Bob", "   ")

    def test_send_to_missing_chat(self, chats, firebase):
        """Test sending into an unknown chat."""
        with pytest.raises(ChatNotFoundError):
            chats.send_message("nope", "bob", "Bob", "Hello")

    def test_outsider_cannot_send(self, chats, chat):
        """Test only participants may post."""
        with pytest.raises(ChatError, match="not a participant"):
            chats.send_message(chat.id, "carol", "Carol", "Hello")

    def test_list_messages_oldest_first(self, chats, fake_db, chat):
        """Test messages are returned in send order."""
        base = datetime(2025, 4, 1, tzinfo=timezone.utc)
        for index, text in enumerate(["third", "first", "second"]):
            offset = {"first": 0, "second": 1, "third": 2}[text]
            fake_db.store[f"messages/m{index}"] = {
                "id": f"m{index}",
                "chatId": chat.id,
                "senderId": "bob",
                "senderName": "Bob",
                "text": text,
                "timestamp": base + timedelta(minutes=offset),
                "isRead": False,
            }
        fake_db.store["messages/other"] = {
            "id": "other",
            "chatId": "different-chat",
            "senderId": "bob",
            "senderName": "Bob",
            "text": "elsewhere",
            "timestamp": base,
        }

        assert [m.text for m in chats.list_messages(chat.id)] == ["first", "second", "third"]

    def test_mark_messages_as_read(self, chats, chat):
        """Test only the other party's messages are marked and the count resets."""
        chats.send_message(chat.id, "bob", "Bob", "Hi")
        chats.send_message(chat.id, "bob", "Bob", "Hello?")
        chats.send_message(chat.id, "alice", "Alice", "Hey")

        marked = chats.mark_messages_as_read(chat.id, "alice")

        assert marked == 2
        messages = chats.list_messages(chat.id)
        assert all(m.is_read for m in messages if m.sender_id == "bob")
        assert not [m for m in messages if m.sender_id == "alice"][0].is_read
        assert chats.get_chat(chat.id).unread_count("alice") == 0
        assert chats.get_chat(chat.id).unread_count("bob") == 1

    def test_mark_read_resets_drifted_count(self, chats, fake_db, chat):
        """Test the count is reset even with nothing unread."""
        chats.increment_unread_count(chat.id, "alice")
        assert chats.get_chat(chat.id).unread_count("alice") == 1

        assert chats.mark_messages_as_read(chat.id, "alice") == 0
        assert chats.get_chat(chat.id).unread_count("alice") == 0

    def test_outsider_cannot_mark_read(self, chats, fake_db, chat):
        """Test only participants may mark a chat read."""
        chats.send_message(chat.id, "bob", "Bob", "Hi")
        commits = len(fake_db.commits)

        with pytest.raises(ChatError, match="not a participant"):
            chats.mark_messages_as_read(chat.id, "carol")

        assert len(fake_db.commits) == commits
        assert not any(m.is_read for m in chats.list_messages(chat.id))
        assert chats.get_chat(chat.id).unread_count("alice") == 1
        assert "carol" not in fake_db.store[f"chats/{chat.id}"].get("unreadCounts", {})

    def test_mark_read_missing_chat(self, chats, firebase):
        """Test marking an unknown chat."""
        with pytest.raises(ChatNotFoundError):
            chats.mark_messages_as_read("nope", "alice")

    def test_total_unread_count(self, chats, alice, bob, carol):
        """Test unread messages are summed across chats."""
        with_bob = chats.get_or_create_chat(
            ChatParticipant.from_profile(alice), ChatParticipant.from_profile(bob)
        )
        with_carol = chats.get_or_create_chat(
            ChatParticipant.from_profile(alice), ChatParticipant.from_profile(carol)
        )
        chats.send_message(with_bob.id, "bob", "Bob", "One")
        chats.send_message(with_carol.id, "carol", "Carol", "Two")
        chats.send_message(with_carol.id, "carol", "Carol", "Three")

        assert chats.total_unread_count("alice") == 3
        assert chats.total_unread_count("bob") == 0

    def test_update_last_message(self, chats, chat):
        """Test recording a message as the latest moves the chat forward."""
        sent_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        message = Message(
            id="m9", chat_id=chat.id, sender_id="alice", sender_name="Alice",
            text="See you Saturday", timestamp=sent_at,
        )

        chats.update_last_message(chat.id, message)

        stored = chats.get_chat(chat.id)
        assert stored.last_message_id == "m9"
        assert stored.last_message_text == "See you Saturday"
        assert stored.updated_at == sent_at

    def test_counter_updates_on_missing_chat(self, chats, firebase):
        """Test counter and last-message updates on an unknown chat."""
        with pytest.raises(ChatNotFoundError):
            chats.increment_unread_count("nope", "alice")
        with pytest.raises(ChatNotFoundError):
            chats.reset_unread_count("nope", "alice")

    def test_watch_messages(self, chats, chat):
        """Test the watcher sees new messages in order."""
        seen = []
        handle = chats.watch_messages(chat.id, seen.append)
        assert seen[-1] == []

        chats.send_message(chat.id, "bob", "Bob", "Hi")
        assert [m.text for m in seen[-1]] == ["Hi"]

        handle.unsubscribe()
