"""Repositories that keep users, chats and messages in process memory."""

from __future__ import annotations

from .domain import Chat, ChatId, ChatMessage, MessageId, User, UserId


class NotFoundError(LookupError):
    """Raised when a requested record is not stored."""


class UserInMemoryRepository:
    """Stores users by id; also serves as accessor and id generator."""

    def __init__(self):
        self._storage: dict[UserId, User] = {}

    def get_by_id(self, user_id):
        try:
            return self._storage[user_id]
        except KeyError:
            raise NotFoundError(f"there is no user with id [{user_id.value}]") from None

    def save(self, user):
        self._storage[user.id] = user
        return user

    def generate(self):
        """Return the highest stored id, or id 1 when nothing is stored."""
        return max(self._storage, key=lambda item: item.value, default=UserId(1))

    def exists(self, user_id):
        return user_id in self._storage


class ChatInMemoryRepository:
    """Stores chats by id; also serves as accessor and id generator."""

    def __init__(self):
        self._storage: dict[ChatId, Chat] = {}

    def get_by_id(self, chat_id):
        try:
            return self._storage[chat_id]
        except KeyError:
            raise NotFoundError(f"there is no chat with id = [{chat_id.value}]") from None

    def get_by_user_id(self, user_id):
        matches = [
            chat
            for chat in self._storage.values()
            if user_id in (chat.first_user, chat.second_user)
        ]
        if not matches:
            raise NotFoundError(f"there is no chats for user id = [{user_id.value}]")
        return matches

    def save(self, chat):
        self._storage[chat.id] = chat
        return chat

    def generate(self):
        """Return the highest stored id, or id 1 when nothing is stored."""
        return max(self._storage, key=lambda item: item.value, default=ChatId(1))


class MessageInMemoryRepository:
    """Stores chat messages by id; also serves as accessor and id generator."""

    def __init__(self):
        self._storage: dict[MessageId, ChatMessage] = {}

    def get_by_message_id(self, message_id):
        try:
            return self._storage[message_id]
        except KeyError:
            raise NotFoundError(
                f"there is no message with id = [{message_id.value}]"
            ) from None

    def get_by_chat_id(self, chat_id):
        matches = [message for message in self._storage.values() if message.chat_id == chat_id]
        if not matches:
            raise NotFoundError(
                f"there is no messages for chat with id = [{chat_id.value}]"
            )
        return matches

    def save(self, message):
        self._storage[message.id] = message
        return message

    def generate(self):
        """Return the highest stored id, or id 1 when nothing is stored."""
        return max(self._storage, key=lambda item: item.value, default=MessageId(1))