import asyncio
import json
import logging
from dataclasses import dataclass

import pytest
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestClient, TestServer

from petmsngr.domain import ChatId, User, UserId
from petmsngr.memory import ChatInMemoryRepository, UserInMemoryRepository
from petmsngr.routes import (
    Client,
    ClientStorage,
    NewMessageRequest,
    create_chat_handler,
    message_handler,
    sign_up_handler,
    user_chats_handler,
)
from petmsngr.usecases import CreateChatUseCase, GetUserChatsUseCase, UserSignUpUseCase

LOG = logging.getLogger("tests.routes")


@dataclass
class Setup:
    app: web.Application
    users: UserInMemoryRepository
    chats: ChatInMemoryRepository
    storage: ClientStorage


def build(id_generator=None):
    users = UserInMemoryRepository()
    chats = ChatInMemoryRepository()
    storage = ClientStorage()
    app = web.Application()
    sign_up = UserSignUpUseCase(users, id_generator or users)
    app.router.add_post("/sign-up", sign_up_handler(LOG, sign_up))
    app.router.add_post("/chat", create_chat_handler(LOG, CreateChatUseCase(chats, chats, users)))
    app.router.add_get("/chat/user/{user_id}", user_chats_handler(LOG, GetUserChatsUseCase(chats)))
    app.router.add_route("*", "/ws", message_handler(LOG, storage))
    return Setup(app, users, chats, storage)


@pytest.mark.asyncio
async def test_sign_up_stores_user():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/sign-up", json={"login": "alice"})
        assert resp.status == 200
        assert await resp.json() == {"status": "OK"}
    assert setup.users.get_by_id(UserId(1)).login == "alice"


@pytest.mark.asyncio
async def test_sign_up_rejects_malformed_body():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/sign-up", data="not json")
        assert resp.status == 400
        assert await resp.json() == {"status": "ERROR", "error": "invalid request body"}


@pytest.mark.asyncio
async def test_sign_up_requires_login():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/sign-up", json={})
        body = await resp.json()
    assert resp.status == 400
    assert body["status"] == "ERROR"
    assert "SignUpRequest.Login" in body["error"]
    assert not setup.users.exists(UserId(1))


@pytest.mark.asyncio
async def test_sign_up_reports_use_case_failure(mocker):
    generator = mocker.Mock()
    generator.generate.side_effect = RuntimeError("boom")
    setup = build(id_generator=generator)
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/sign-up", json={"login": "alice"})
        body = await resp.json()
    assert resp.status == 500
    assert body["error"].endswith("boom")


@pytest.mark.asyncio
async def test_create_chat_and_list_it():
    setup = build()
    setup.users.save(User(UserId(1), "alice"))
    setup.users.save(User(UserId(2), "bob"))
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/chat", json={"first_user_id": 1, "second_user_id": 2})
        assert resp.status == 200
        assert await resp.json() == {"status": "OK"}
        resp = await client.get("/chat/user/2")
        chats = await resp.json()
    assert resp.status == 200
    assert len(chats) == 1
    assert chats[0]["Id"] == {"Value": 1}
    assert chats[0]["FirstUser"] == {"Value": 1}
    assert chats[0]["SecondUser"] == {"Value": 2}


@pytest.mark.asyncio
async def test_create_chat_with_unknown_user_fails():
    setup = build()
    setup.users.save(User(UserId(1), "alice"))
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/chat", json={"first_user_id": 1, "second_user_id": 5})
        body = await resp.json()
    assert resp.status == 500
    assert body["error"] == "there is no user with id = 5"


@pytest.mark.asyncio
async def test_create_chat_validates_required_ids():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/chat", json={"first_user_id": 0, "second_user_id": 2})
        body = await resp.json()
    assert resp.status == 400
    assert "FirstUserId" in body["error"]
    assert "SecondUserId" not in body["error"]


@pytest.mark.asyncio
async def test_create_chat_rejects_wrong_types():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.post("/chat", json={"first_user_id": "1", "second_user_id": 2})
        body = await resp.json()
    assert resp.status == 400
    assert body["error"] == "invalid request body"


@pytest.mark.asyncio
async def test_user_chats_rejects_bad_path_parameter():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.get("/chat/user/abc")
        body = await resp.json()
    assert resp.status == 400
    assert body["error"] == "invalid path parameter - user_id"


@pytest.mark.asyncio
async def test_user_chats_without_chats_fails():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.get("/chat/user/7")
        body = await resp.json()
    assert resp.status == 500
    assert body["status"] == "ERROR"


def test_broadcast_skips_sender_and_other_chats():
    storage = ClientStorage()
    sender = Client(None, ChatId(1), UserId(1), storage)
    receiver = Client(None, ChatId(1), UserId(2), storage)
    outsider = Client(None, ChatId(2), UserId(3), storage)
    for client in (sender, receiver, outsider):
        storage.register(client)
    storage.broadcast(NewMessageRequest(user_id=1, chat_id=1, payload="hi"))
    assert receiver.send.get_nowait() == "hi"
    assert sender.send.empty()
    assert outsider.send.empty()


def test_register_groups_by_chat_and_ignores_none():
    storage = ClientStorage()
    first = Client(None, ChatId(4), UserId(1), storage)
    second = Client(None, ChatId(4), UserId(2), storage)
    storage.register(first)
    storage.register(second)
    storage.register(None)
    assert storage.clients == {ChatId(4): [first, second]}


@pytest.mark.asyncio
async def test_websocket_rejects_missing_chat_id():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.get("/ws", params={"user_id": "1"})
        body = await resp.json()
    assert resp.status == 400
    assert body["error"] == "invalid query parameter - chat_id"


@pytest.mark.asyncio
async def test_websocket_rejects_missing_user_id():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.get("/ws", params={"chat_id": "1"})
        body = await resp.json()
    assert resp.status == 400
    assert body["error"] == "invalid query parameter - user_id"


@pytest.mark.asyncio
async def test_websocket_requires_upgrade():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        resp = await client.get("/ws", params={"chat_id": "1", "user_id": "1"})
    assert resp.status == 400
    assert setup.storage.clients == {}


@pytest.mark.asyncio
async def test_websocket_relays_message_to_other_user():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        first = await client.ws_connect("/ws", params={"chat_id": "1", "user_id": "1"})
        second = await client.ws_connect("/ws", params={"chat_id": "1", "user_id": "2"})
        await first.send_str(json.dumps({"user_id": 1, "chat_id": 1, "payload": "hello"}))
        received = await asyncio.wait_for(second.receive_str(), 5)
        await first.close()
        await second.close()
    assert received == "hello"


@pytest.mark.asyncio
async def test_websocket_closes_on_invalid_message():
    setup = build()
    async with TestClient(TestServer(setup.app)) as client:
        connection = await client.ws_connect("/ws", params={"chat_id": "1", "user_id": "1"})
        await connection.send_str("not json")
        msg = await asyncio.wait_for(connection.receive(), 5)
        await connection.close()
    assert msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSED, WSMsgType.CLOSING)