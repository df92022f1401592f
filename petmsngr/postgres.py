"""Repositories that keep users, chats and messages in a PostgreSQL database."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import Datasource
from .domain import (
    Chat,
    ChatId,
    ChatMessage,
    MessageId,
    MessagePayload,
    User,
    UserId,
    parse_message_status,
)
from .memory import NotFoundError

CONNECTION_TEMPLATE = "postgresql://{username}:{password}@{host}/{database}?sslmode=disable"

_NO_ROWS = "no rows in result set"


class RepositoryError(Exception):
    """Raised when the database cannot serve a repository request."""


def connection_url(datasource):
    """Build the database URL for *datasource*."""
    return CONNECTION_TEMPLATE.format(
        username=datasource.username,
        password=datasource.password,
        host=datasource.host,
        database=datasource.database_name,
    )


def open_engine(datasource: Datasource):
    """Create an engine for *datasource* and check that the database answers."""
    try:
        engine = create_engine(connection_url(datasource))
        with engine.connect():
            pass
    except (SQLAlchemyError, ImportError) as err:
        raise RepositoryError(f"failed to open database {err}") from err
    return engine


class _PostgresRepository:
    """Shared set-up: creates the table and id sequence the repository needs."""

    _table: str = ""
    _table_ddl: str = ""
    _sequence: str = ""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._transact(
            f"can't create table - {self._table}, error: ",
            lambda connection: connection.execute(text(self._table_ddl)),
        )
        self._transact(
            f"can't create sequence - {self._sequence}, error: ",
            lambda connection: connection.execute(
                text(f"CREATE SEQUENCE IF NOT EXISTS {self._sequence} START 1")
            ),
        )

    def _transact(self, failure: str, work: Callable[[Connection], Any]) -> Any:
        try:
            with self._engine.begin() as connection:
                return work(connection)
        except SQLAlchemyError as err:
            raise RepositoryError(f"{failure}{err}") from err

    def _next_id(self, failure: str) -> int:
        statement = text(f"SELECT nextval('{self._sequence}')")
        return int(
            self._transact(
                failure, lambda connection: connection.execute(statement).scalar_one()
            )
        )


class UserPostgresRepository(_PostgresRepository):
    """Stores users; also serves as accessor and id generator."""

    _table = "messanger_user"
    _table_ddl = (
        "CREATE TABLE IF NOT EXISTS messanger_user ("
        "id BIGINT PRIMARY KEY, "
        "login VARCHAR(255), "
        "created TIMESTAMP)"
    )
    _sequence = "message_user_id_seq"

    def get_by_id(self, user_id):
        statement = text("SELECT * FROM messanger_user WHERE id = :id")
        row = self._transact(
            f"can't get user with id [{user_id.value}]: ",
            lambda connection: connection.execute(statement, {"id": user_id.value}).first(),
        )
        if row is None:
            raise NotFoundError(f"there is no user with id = [{user_id.value}]")
        persisted_id, login, _created = row
        return User(id=UserId(persisted_id), login=login)

    def save(self, user):
        statement = text(
            "INSERT INTO messanger_user(id, login, created) VALUES(:id, :login, :created)"
        )
        params = {"id": user.id.value, "login": user.login, "created": datetime.now()}
        self._transact(
            "can't save user: ",
            lambda connection: connection.execute(statement, params),
        )
        return user

    def generate(self):
        return UserId(self._next_id("can't get new user id, error: "))

    def exists(self, user_id):
        statement = text("SELECT id FROM messanger_user WHERE id = :id")
        row = self._transact(
            "can't check user existence, error: ",
            lambda connection: connection.execute(statement, {"id": user_id.value}).first(),
        )
        return row is not None


def _chat_from_row(row: Any) -> Chat:
    persisted_id, first_user_id, second_user_id, created = row
    return Chat(
        id=ChatId(persisted_id),
        first_user=UserId(first_user_id),
        second_user=UserId(second_user_id),
        created=created,
    )


class ChatPostgresRepository(_PostgresRepository):
    """Stores chats; also serves as accessor and id generator."""

    _table = "chats"
    _table_ddl = (
        "CREATE TABLE IF NOT EXISTS chats ("
        "id BIGINT PRIMARY KEY, "
        "first_user_id BIGINT REFERENCES messanger_user(id), "
        "second_user_id BIGINT REFERENCES messanger_user(id), "
        "created TIMESTAMP)"
    )
    _sequence = "chat_id_seq"

    def get_by_id(self, chat_id):
        statement = text("SELECT * FROM chats WHERE id = :id")
        row = self._transact(
            "can't build chat from result set: ",
            lambda connection: connection.execute(statement, {"id": chat_id.value}).first(),
        )
        if row is None:
            raise RepositoryError(f"can't build chat from result set: {_NO_ROWS}")
        return _chat_from_row(row)

    def get_by_user_id(self, user_id):
        statement = text(
            "SELECT * FROM chats WHERE first_user_id = :user_id OR second_user_id = :user_id"
        )
        rows = self._transact(
            f"can't get chats by user id = [{user_id.value}], error: ",
            lambda connection: connection.execute(
                statement, {"user_id": user_id.value}
            ).all(),
        )
        return [_chat_from_row(row) for row in rows]

    def save(self, chat):
        statement = text(
            "INSERT INTO chats(id, first_user_id, second_user_id, created) "
            "VALUES(:id, :first_user_id, :second_user_id, :created)"
        )
        params = {
            "id": chat.id.value,
            "first_user_id": chat.first_user.value,
            "second_user_id": chat.second_user.value,
            "created": chat.created,
        }
        self._transact(
            f"can't save chat with id = [{chat.id.value}], error: ",
            lambda connection: connection.execute(statement, params),
        )
        return chat

    def generate(self):
        return ChatId(self._next_id("can't get new chat id, error: "))


def _message_from_row(row: Any) -> ChatMessage:
    persisted_id, chat_id, status, payload, created = row
    return ChatMessage(
        id=MessageId(persisted_id),
        chat_id=ChatId(chat_id),
        payload=MessagePayload(payload),
        status=parse_message_status(status),
        created=created,
    )


class MessagePostgresRepository(_PostgresRepository):
    """Stores chat messages; also serves as accessor and id generator."""

    _table = "messages"
    _table_ddl = (
        "CREATE TABLE IF NOT EXISTS messages ("
        "id BIGINT PRIMARY KEY, "
        "chat_id BIGINT, "
        "status VARCHAR(255), "
        "payload TEXT, "
        "created TIMESTAMP)"
    )
    _sequence = "messages_id_seq"

    def get_by_message_id(self, message_id):
        statement = text("SELECT * FROM messages WHERE id = :id")
        row = self._transact(
            f"can't get message with id = [{message_id.value}], error: ",
            lambda connection: connection.execute(
                statement, {"id": message_id.value}
            ).first(),
        )
        if row is None:
            raise RepositoryError(f"can't build message from result set: {_NO_ROWS}")
        return _message_from_row(row)

    def get_by_chat_id(self, chat_id):
        statement = text("SELECT * FROM messages WHERE chat_id = :chat_id ORDER BY id")
        rows = self._transact(
            f"can't get chat by id = [{chat_id.value}], error: ",
            lambda connection: connection.execute(
                statement, {"chat_id": chat_id.value}
            ).all(),
        )
        return [_message_from_row(row) for row in rows]

    def save(self, message):
        statement = text(
            "INSERT INTO messages(id, chat_id, status, payload, created) "
            "VALUES (:id, :chat_id, :status, :payload, :created)"
        )
        params = {
            "id": message.id.value,
            "chat_id": message.chat_id.value,
            "status": message.status.name,
            "payload": message.payload.value,
            "created": message.created,
        }
        self._transact(
            f"can't save message with id = [{message.id.value}], error: ",
            lambda connection: connection.execute(statement, params),
        )
        return message

    def generate(self):
        return MessageId(self._next_id("can't get new message id, error: "))