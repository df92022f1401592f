"""JSON response bodies shared by the HTTP handlers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from aiohttp import web

STATUS_OK = "OK"
STATUS_ERROR = "ERROR"


@dataclass(frozen=True)
class Response:
    """Status body; the error text is left out when empty."""

    status: str
    error: str = ""

    def to_dict(self):
        body = {"status": self.status}
        if self.error:
            body["error"] = self.error
        return body


def error(msg):
    """A failure body carrying *msg*."""
    return Response(STATUS_ERROR, msg)


def ok():
    """A success body."""
    return Response(STATUS_OK)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Response):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: _jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def json_response(status, payload):
    """Build an HTTP response with *status* and *payload* encoded as JSON."""
    text = json.dumps(_jsonable(payload)) + "\n"
    return web.Response(status=status, text=text, content_type="application/json")