"""Domain objects of the messenger: users, chats and messages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum


@dataclass(frozen=True)
class UserId:
    value: int


@dataclass(frozen=True)
class User:
    id: UserId
    login: str


@dataclass(frozen=True)
class ChatId:
    value: int


@dataclass(frozen=True)
class Chat:
    id: ChatId
    first_user: UserId
    second_user: UserId
    created: datetime


@dataclass(frozen=True)
class MessageId:
    value: int


@dataclass(frozen=True)
class MessagePayload:
    value: str


class MessageStatus(IntEnum):
    """Delivery state of a chat message."""

    NEW = 0
    SENT = 1
    READ = 2
    UNKNOWN = 3

    def __str__(self) -> str:
        return self.name


def parse_message_status(source):
    """Return the status named *source*, or UNKNOWN when no status has that name."""
    try:
        return MessageStatus[source]
    except KeyError:
        return MessageStatus.UNKNOWN


@dataclass(frozen=True)
class ChatMessage:
    id: MessageId
    chat_id: ChatId
    payload: MessagePayload
    status: MessageStatus
    created: datetime


@dataclass(frozen=True)
class NewMessage:
    chat_id: ChatId
    payload: MessagePayload