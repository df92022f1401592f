"""Service assembly: logging, storage selection, routes and the entry point."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from aiohttp import web

from .config import ConfigError, load_config
from .memory import ChatInMemoryRepository, MessageInMemoryRepository, UserInMemoryRepository
from .postgres import (
    ChatPostgresRepository,
    MessagePostgresRepository,
    UserPostgresRepository,
    open_engine,
)
from .routes import (
    ClientStorage,
    create_chat_handler,
    message_handler,
    sign_up_handler,
    user_chats_handler,
)
from .usecases import CreateChatUseCase, GetUserChatsUseCase, UserSignUpUseCase

ENV_LOCAL = "local"
ENV_DEV = "dev"
ENV_PROD = "prod"

POSTGRES = "postgres"
IN_MEMMORY = "in_memmory"

_LEVEL_NAMES = {"WARNING": "WARN", "CRITICAL": "ERROR"}


def _entries(record: logging.LogRecord) -> dict[str, str]:
    entries = {
        "time": datetime.fromtimestamp(record.created).astimezone().isoformat(),
        "level": _LEVEL_NAMES.get(record.levelname, record.levelname),
        "msg": record.getMessage(),
    }
    env = getattr(record, "env", None)
    if env is not None:
        entries["env"] = str(env)
    return entries


def _quote(value: str) -> str:
    if value and not any(char in value for char in ' ="\\\n\t'):
        return value
    return json.dumps(value)


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return " ".join(f"{key}={_quote(value)}" for key, value in _entries(record).items())


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(_entries(record))


_ENVIRONMENTS = {
    ENV_LOCAL: (_TextFormatter, logging.DEBUG),
    ENV_DEV: (_JsonFormatter, logging.DEBUG),
    ENV_PROD: (_JsonFormatter, logging.INFO),
}


def setup_logger(env):
    """Configure the service logger for the *env* environment."""
    try:
        formatter_type, level = _ENVIRONMENTS[env]
    except KeyError:
        raise ValueError(f"unknown environment {env!r}") from None
    logger = logging.getLogger("petmsngr")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter_type())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


@dataclass(frozen=True)
class UserComponents:
    accessor: Any
    persistence: Any
    id_generator: Any


@dataclass(frozen=True)
class ChatComponents:
    accessor: Any
    persistence: Any
    id_generator: Any


@dataclass(frozen=True)
class MessageComponents:
    accessor: Any
    persistence: Any
    id_generator: Any


def _invalid_type() -> ValueError:
    return ValueError("Invalid datasource type")


def build_user_components(datasource):
    """User storage for the configured datasource."""
    if datasource.type == POSTGRES:
        repository = UserPostgresRepository(open_engine(datasource))
    elif datasource.type == IN_MEMMORY:
        repository = UserInMemoryRepository()
    else:
        raise _invalid_type()
    return UserComponents(repository, repository, repository)


def build_chat_components(datasource):
    """Chat storage for the configured datasource."""
    if datasource.type == POSTGRES:
        repository = ChatPostgresRepository(open_engine(datasource))
    elif datasource.type == IN_MEMMORY:
        repository = ChatInMemoryRepository()
    else:
        raise _invalid_type()
    return ChatComponents(repository, repository, repository)


def build_message_components(datasource):
    """Message storage for the configured datasource."""
    if datasource.type == POSTGRES:
        repository = MessagePostgresRepository(open_engine(datasource))
    elif datasource.type == IN_MEMMORY:
        repository = MessageInMemoryRepository()
    else:
        raise _invalid_type()
    return MessageComponents(repository, repository, repository)


def create_app(config, log):
    """Build the web application with all routes wired to their use cases."""
    users = build_user_components(config.datasource)
    chats = build_chat_components(config.datasource)

    sign_up = UserSignUpUseCase(users.persistence, users.id_generator)
    get_chats = GetUserChatsUseCase(chats.accessor)
    create_chat = CreateChatUseCase(chats.persistence, chats.id_generator, users.accessor)
    storage = ClientStorage()

    app = web.Application()
    app.router.add_post("/api/v1/user/sign-up", sign_up_handler(log, sign_up))
    app.router.add_post("/api/v1/chat", create_chat_handler(log, create_chat))
    app.router.add_get("/api/v1/chat/user/{user_id}", user_chats_handler(log, get_chats))
    app.router.add_route("*", "/ws", message_handler(log, storage))
    return app


def _split_address(address: str) -> tuple[str | None, int]:
    if not address:
        return None, 80
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    host = host.strip("[]")
    return (host or None), int(port)


def main(argv=None):
    """Run the messenger web service; the configuration comes from CONFIG_PATH."""
    parser = argparse.ArgumentParser(
        prog="petmsngr",
        description="Run the messenger web service. The CONFIG_PATH variable names its YAML configuration.",
    )
    parser.parse_args(argv)

    try:
        config = load_config()
    except ConfigError as err:
        print(err, file=sys.stderr)
        return 1

    log = logging.LoggerAdapter(setup_logger(config.env), {"env": config.env})
    log.info("Startup web service")
    app = create_app(config, log)

    try:
        host, port = _split_address(config.http_server.address)
        web.run_app(app, host=host, port=port, print=None)
    except (ValueError, OSError):
        log.error("Error while start up server")
        return 1
    return 0