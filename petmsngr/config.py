"""Service configuration loaded from a YAML file."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any

import yaml

CONFIG_PATH_ENV = "CONFIG_PATH"

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)([^\d.]*)")


class ConfigError(Exception):
    """Raised when the configuration cannot be located, read or decoded."""


def parse_duration(text):
    """Parse a duration such as ``"4s"``, ``"1h30m"`` or ``"-1.5h"``."""
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration {text!r}")
    if text == "0":
        return timedelta(0)
    body = text
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]
    if not body:
        raise ConfigError(f"invalid duration {text!r}")

    total = Decimal(0)
    position = 0
    while position < len(body):
        match = _COMPONENT.match(body, position)
        if match is None:
            raise ConfigError(f"invalid duration {text!r}")
        number, unit = match.groups()
        if not unit:
            raise ConfigError(f"missing unit in duration {text!r}")
        scale = _UNIT_NANOSECONDS.get(unit)
        if scale is None:
            raise ConfigError(f"unknown unit {unit!r} in duration {text!r}")
        total += Decimal(number) * scale
        position = match.end()

    delta = timedelta(microseconds=int(total) // 1000)
    return -delta if negative else delta


def _string(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"field {key!r} must be a scalar, got {type(value).__name__}")


def _duration(value: Any, key: str) -> timedelta:
    if value is None:
        return timedelta(0)
    if isinstance(value, bool):
        raise ConfigError(f"field {key!r} must be a duration")
    if isinstance(value, int):
        return timedelta(microseconds=value // 1000)
    if isinstance(value, str):
        return parse_duration(value)
    raise ConfigError(f"field {key!r} must be a duration")


def _section(data: Mapping, key: str) -> Mapping:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"section {key!r} must be a mapping")
    return value


@dataclass(frozen=True)
class HttpServer:
    """Address and timeouts of the HTTP listener."""

    address: str = ""
    timeout: timedelta = timedelta(0)
    idle_timeout: timedelta = timedelta(0)


@dataclass(frozen=True)
class Datasource:
    """Where and how the service stores its data."""

    type: str = ""
    host: str = ""
    database_name: str = ""
    username: str = ""
    password: str = ""


@dataclass(frozen=True)
class Config:
    """Whole service configuration."""

    env: str = ""
    http_server: HttpServer = field(default_factory=HttpServer)
    datasource: Datasource = field(default_factory=Datasource)

    @classmethod
    def from_mapping(cls, data):
        """Build a configuration from decoded YAML; missing keys keep defaults."""
        if not isinstance(data, Mapping):
            raise ConfigError("configuration document must be a mapping")
        server = _section(data, "http_server")
        source = _section(data, "datasource")
        return cls(
            env=_string(data.get("env"), "env"),
            http_server=HttpServer(
                address=_string(server.get("address"), "address"),
                timeout=_duration(server.get("timeout"), "timeout"),
                idle_timeout=_duration(server.get("idle_timeout"), "idle_timeout"),
            ),
            datasource=Datasource(
                type=_string(source.get("type"), "type"),
                host=_string(source.get("host"), "host"),
                database_name=_string(source.get("batabase_name"), "batabase_name"),
                username=_string(source.get("username"), "username"),
                password=_string(source.get("password"), "password"),
            ),
        )


def load_config(path=None):
    """Load the configuration from *path*, or from the file named by CONFIG_PATH."""
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV, "")
    if not path:
        raise ConfigError(f"{CONFIG_PATH_ENV} env variable is not set")
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as err:
        raise ConfigError(f"Error opening config file: {path}") from err
    try:
        data = yaml.safe_load(text)
        if data is None:
            raise ConfigError("configuration document is empty")
        return Config.from_mapping(data)
    except (yaml.YAMLError, ConfigError) as err:
        raise ConfigError(f"Error while read config file: {path}") from err