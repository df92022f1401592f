"""HTTP and websocket handlers of the messenger."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from aiohttp import WSMsgType, web

from .domain import Chat, ChatId, UserId
from .response import error, json_response, ok

_INT64 = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_int64(text: str | None) -> int:
    if text is None or not _INT64.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer out of range {text!r}")
    return value


def _int_field(body: dict, key: str) -> int:
    value = body.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"field {key!r} is out of range")
    return value


def _str_field(body: dict, key: str) -> str:
    value = body.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _json_object(raw: str | bytes) -> dict:
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as err:
        raise ValueError(str(err)) from err
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValueError("body must be a JSON object")
    return body


async def _read_json(request: web.Request) -> dict:
    try:
        raw = await request.read()
    except UnicodeDecodeError as err:
        raise ValueError(str(err)) from err
    return _json_object(raw)


def _required_error(struct: str, names: list[str]) -> str:
    return "\n".join(
        f"Key: '{struct}.{name}' Error:Field validation for '{name}' failed on the 'required' tag"
        for name in names
    )


def _chat_json(chat: Chat) -> dict:
    return {
        "Id": {"Value": chat.id.value},
        "FirstUser": {"Value": chat.first_user.value},
        "SecondUser": {"Value": chat.second_user.value},
        "Created": chat.created.isoformat(),
    }


@dataclass(frozen=True)
class NewMessageRequest:
    """A message a websocket client sends to its chat."""

    user_id: int = 0
    chat_id: int = 0
    payload: str = ""


def _decode_message(raw: str | bytes) -> NewMessageRequest:
    body = _json_object(raw)
    return NewMessageRequest(
        user_id=_int_field(body, "user_id"),
        chat_id=_int_field(body, "chat_id"),
        payload=_str_field(body, "payload"),
    )


@dataclass(eq=False)
class Client:
    """A websocket connection taking part in one chat as one user."""

    connection: Any
    chat_id: ChatId
    user_id: UserId
    storage: ClientStorage
    send: asyncio.Queue = field(default_factory=asyncio.Queue)

    async def _read_messages(self, log) -> None:
        async for msg in self.connection:
            if msg.type not in (WSMsgType.TEXT, WSMsgType.BINARY):
                log.error("can't read request message: %s", self.connection.exception())
                break
            try:
                request = _decode_message(msg.data)
            except ValueError as err:
                log.error("can't process request message: %s", err)
                break
            self.storage.broadcast(request)

    async def _write_messages(self, log) -> None:
        while True:
            payload = await self.send.get()
            try:
                await self.connection.send_str(payload)
            except (ConnectionError, RuntimeError) as err:
                log.error("can't write message: %s", err)
                break


class ClientStorage:
    """Connected clients grouped by chat; relays messages between them."""

    def __init__(self):
        self.clients: dict[ChatId, list[Client]] = {}

    def register(self, client):
        """Add *client* to the clients of its chat."""
        if client is None:
            return
        self.clients.setdefault(client.chat_id, []).append(client)

    def _unregister(self, client: Client) -> None:
        members = self.clients.get(client.chat_id)
        if members and client in members:
            members.remove(client)
            if not members:
                del self.clients[client.chat_id]

    def broadcast(self, message):
        """Queue the payload for every client of the chat except the sender's user."""
        chat_id = ChatId(message.chat_id)
        sender = UserId(message.user_id)
        for client in self.clients.get(chat_id, []):
            if client.user_id != sender:
                client.send.put_nowait(message.payload)


def sign_up_handler(log, sign_up):
    """Handler that registers a user from a ``{"login": ...}`` body."""

    async def handle(request: web.Request) -> web.StreamResponse:
        log.info("Handle request of user sign up")
        try:
            login = _str_field(await _read_json(request), "login")
        except ValueError:
            return json_response(400, error("invalid request body"))
        if not login:
            return json_response(400, error(_required_error("SignUpRequest", ["Login"])))
        try:
            sign_up.execute(login)
        except Exception as err:
            log.error("Failed to sigup user: %s", err)
            return json_response(500, error(str(err)))
        return json_response(200, ok())

    return handle


def create_chat_handler(log, create_chat):
    """Handler that opens a chat between the two users named in the body."""

    async def handle(request: web.Request) -> web.StreamResponse:
        try:
            body = await _read_json(request)
            first = _int_field(body, "first_user_id")
            second = _int_field(body, "second_user_id")
        except ValueError:
            return json_response(400, error("invalid request body"))
        missing = [
            name
            for name, value in (("FirstUserId", first), ("SecondUserId", second))
            if value == 0
        ]
        if missing:
            return json_response(400, error(_required_error("NewChatRequest", missing)))
        try:
            create_chat.execute(UserId(first), UserId(second))
        except Exception as err:
            log.error("error while create chat: %s", err)
            return json_response(500, error(str(err)))
        return json_response(200, ok())

    return handle


def user_chats_handler(log, get_user_chats):
    """Handler that lists the chats of the user in the ``user_id`` path segment."""

    async def handle(request: web.Request) -> web.StreamResponse:
        log.info("Handle request to get chats")
        try:
            user_id = _parse_int64(request.match_info.get("user_id"))
        except ValueError:
            return json_response(400, error("invalid path parameter - user_id"))
        try:
            chats = get_user_chats.execute(UserId(user_id))
        except Exception as err:
            log.error("error while get user chats: %s", err)
            return json_response(500, error(str(err)))
        return json_response(200, [_chat_json(chat) for chat in chats])

    return handle


def message_handler(log, storage):
    """Websocket handler joining a client to the chat given in the query."""

    async def handle(request: web.Request) -> web.StreamResponse:
        try:
            chat_id = _parse_int64(request.query.get("chat_id"))
        except ValueError:
            return json_response(400, error("invalid query parameter - chat_id"))
        try:
            user_id = _parse_int64(request.query.get("user_id"))
        except ValueError:
            return json_response(400, error("invalid query parameter - user_id"))

        connection = web.WebSocketResponse()
        if not connection.can_prepare(request).ok:
            log.error("can't upgrade connection to websocket")
            return web.Response(status=400, text="Bad Request")

        client = Client(connection, ChatId(chat_id), UserId(user_id), storage)
        storage.register(client)
        try:
            await connection.prepare(request)
            writer = asyncio.create_task(client._write_messages(log))
            try:
                await client._read_messages(log)
            finally:
                writer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await writer
                await connection.close()
        finally:
            storage._unregister(client)
        return connection

    return handle