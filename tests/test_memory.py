from datetime import datetime

import pytest

from petmsngr.domain import (
    Chat,
    ChatId,
    ChatMessage,
    MessageId,
    MessagePayload,
    MessageStatus,
    User,
    UserId,
)
from petmsngr.memory import (
    ChatInMemoryRepository,
    MessageInMemoryRepository,
    NotFoundError,
    UserInMemoryRepository,
)

CREATED = datetime(2024, 1, 1, 12, 0, 0)


def make_chat(chat_id, first, second):
    return Chat(ChatId(chat_id), UserId(first), UserId(second), CREATED)


def make_message(message_id, chat_id, text):
    return ChatMessage(
        MessageId(message_id), ChatId(chat_id), MessagePayload(text), MessageStatus.NEW, CREATED
    )


def test_user_save_and_get():
    repository = UserInMemoryRepository()
    user = User(UserId(3), "alice")
    assert repository.save(user) == user
    assert repository.get_by_id(UserId(3)) == user
    assert repository.exists(UserId(3))
    assert not repository.exists(UserId(4))


def test_user_get_missing():
    with pytest.raises(NotFoundError, match=r"there is no user with id \[5\]"):
        UserInMemoryRepository().get_by_id(UserId(5))


def test_user_generate():
    repository = UserInMemoryRepository()
    assert repository.generate() == UserId(1)
    repository.save(User(UserId(3), "a"))
    repository.save(User(UserId(7), "b"))
    assert repository.generate() == UserId(7)


def test_user_save_overwrites_same_id():
    repository = UserInMemoryRepository()
    repository.save(User(UserId(1), "alice"))
    repository.save(User(UserId(1), "bob"))
    assert repository.get_by_id(UserId(1)).login == "bob"


def test_chat_save_and_get():
    repository = ChatInMemoryRepository()
    chat = make_chat(2, 1, 3)
    assert repository.save(chat) == chat
    assert repository.get_by_id(ChatId(2)) == chat


def test_chat_get_missing():
    with pytest.raises(NotFoundError, match=r"there is no chat with id = \[9\]"):
        ChatInMemoryRepository().get_by_id(ChatId(9))


def test_chat_get_by_user_id():
    repository = ChatInMemoryRepository()
    first = repository.save(make_chat(1, 10, 20))
    second = repository.save(make_chat(2, 30, 10))
    repository.save(make_chat(3, 20, 30))
    found = repository.get_by_user_id(UserId(10))
    assert sorted(found, key=lambda chat: chat.id.value) == [first, second]
    assert all(UserId(10) in (chat.first_user, chat.second_user) for chat in found)


def test_chat_get_by_user_id_none():
    repository = ChatInMemoryRepository()
    repository.save(make_chat(1, 10, 20))
    with pytest.raises(NotFoundError, match=r"there is no chats for user id = \[99\]"):
        repository.get_by_user_id(UserId(99))


def test_chat_generate():
    repository = ChatInMemoryRepository()
    assert repository.generate() == ChatId(1)
    repository.save(make_chat(2, 1, 2))
    repository.save(make_chat(5, 1, 2))
    assert repository.generate() == ChatId(5)


def test_message_save_and_get():
    repository = MessageInMemoryRepository()
    message = make_message(4, 1, "hello")
    assert repository.save(message) == message
    assert repository.get_by_message_id(MessageId(4)) == message


def test_message_get_missing():
    with pytest.raises(NotFoundError, match=r"there is no message with id = \[6\]"):
        MessageInMemoryRepository().get_by_message_id(MessageId(6))


def test_message_get_by_chat_id():
    repository = MessageInMemoryRepository()
    first = repository.save(make_message(1, 7, "a"))
    repository.save(make_message(2, 8, "b"))
    third = repository.save(make_message(3, 7, "c"))
    found = repository.get_by_chat_id(ChatId(7))
    assert sorted(found, key=lambda message: message.id.value) == [first, third]


def test_message_get_by_chat_id_none():
    with pytest.raises(NotFoundError, match=r"there is no messages for chat with id = \[7\]"):
        MessageInMemoryRepository().get_by_chat_id(ChatId(7))


def test_message_generate():
    repository = MessageInMemoryRepository()
    assert repository.generate() == MessageId(1)
    repository.save(make_message(4, 1, "x"))
    repository.save(make_message(2, 1, "y"))
    assert repository.generate() == MessageId(4)