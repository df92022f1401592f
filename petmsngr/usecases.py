"""Application use cases and the storage interfaces they depend on."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .domain import (
    Chat,
    ChatId,
    ChatMessage,
    MessageId,
    NewMessage,
    User,
    UserId,
)


class UseCaseError(Exception):
    """Raised when a use case cannot complete its request."""


class UserAccessor(Protocol):
    def get_by_id(self, user_id: UserId) -> User: ...

    def exists(self, user_id: UserId) -> bool: ...


class UserPersistence(Protocol):
    def save(self, user: User) -> User: ...


class UserIdGenerator(Protocol):
    def generate(self) -> UserId: ...


class ChatAccessor(Protocol):
    def get_by_id(self, chat_id: ChatId) -> Chat: ...

    def get_by_user_id(self, user_id: UserId) -> list[Chat]: ...


class ChatPersistence(Protocol):
    def save(self, chat: Chat) -> Chat: ...


class ChatIdGenerator(Protocol):
    def generate(self) -> ChatId: ...


class ChatMessageAccessor(Protocol):
    def get_by_message_id(self, message_id: MessageId) -> ChatMessage: ...

    def get_by_chat_id(self, chat_id: ChatId) -> list[ChatMessage]: ...


class ChatMessagePersistence(Protocol):
    def save(self, message: ChatMessage) -> ChatMessage: ...


class MessageIdGenerator(Protocol):
    def generate(self) -> MessageId: ...


class UserSignUpUseCase:
    """Registers a new user under a freshly generated id."""

    def __init__(self, user_persistence: UserPersistence, user_id_generator: UserIdGenerator):
        self._persistence = user_persistence
        self._id_generator = user_id_generator

    def execute(self, login):
        try:
            new_id = self._id_generator.generate()
        except Exception as err:
            raise UseCaseError(
                f"can't handle request to sign up user, error: {err}"
            ) from err
        return self._persistence.save(User(id=new_id, login=login))


class CreateChatUseCase:
    """Opens a chat between two existing users."""

    def __init__(
        self,
        chat_persistence: ChatPersistence,
        chat_id_generator: ChatIdGenerator,
        user_accessor: UserAccessor,
    ):
        self._persistence = chat_persistence
        self._id_generator = chat_id_generator
        self._user_accessor = user_accessor

    def execute(self, first_user_id, second_user_id):
        self._check_user_exists(first_user_id)
        self._check_user_exists(second_user_id)
        try:
            new_id = self._id_generator.generate()
        except Exception as err:
            raise UseCaseError(
                f"can't handle request to create new chat, error: {err}"
            ) from err
        chat = Chat(
            id=new_id,
            first_user=first_user_id,
            second_user=second_user_id,
            created=datetime.now(),
        )
        return self._persistence.save(chat)

    def _check_user_exists(self, user_id: UserId) -> None:
        try:
            found = self._user_accessor.exists(user_id)
        except Exception as err:
            raise UseCaseError(
                f"error while check user existence, error: {err}"
            ) from err
        if not found:
            raise UseCaseError(f"there is no user with id = {user_id.value}")


class GetUserChatsUseCase:
    """Lists the chats a user takes part in."""

    def __init__(self, chat_accessor: ChatAccessor):
        self._accessor = chat_accessor

    def execute(self, user_id):
        return self._accessor.get_by_user_id(user_id)


class HandleChatMessageUseCase:
    """Entry point for incoming chat messages."""

    def __init__(
        self,
        message_accessor: ChatMessageAccessor,
        message_persistence: ChatMessagePersistence,
    ):
        self._accessor = message_accessor
        self._persistence = message_persistence

    def handle(self, message: NewMessage) -> str:
        """Accept *message*; the returned reply text is always empty."""
        return ""