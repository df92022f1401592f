# petmsngr

A small messenger service. Users sign up, a chat is opened between two
users, a user's chats can be listed, and clients connected to the same chat
over a WebSocket pass text to each other.

Users and chats are kept either in process memory or in a PostgreSQL
database.

## Installation

```
pip install .
```

For PostgreSQL storage, a PostgreSQL driver for SQLAlchemy (for example
`psycopg2`) must be installed as well; it is not pulled in by this package.
Without one, start-up fails with `petmsngr.postgres.RepositoryError`.

## Configuration

The service reads a YAML file whose path comes from the `CONFIG_PATH`
environment variable.

```yaml
env: local            # local, dev or prod
http_server:
  address: localhost:8080
  timeout: 4s
  idle_timeout: 60s
datasource:
  type: in_memmory    # or: postgres
  host: localhost:5432
  batabase_name: messenger
  username: user
  password: password
```

- `env` sets the logging, written to standard output: `local` writes
  `key=value` text at debug level, `dev` writes JSON at debug level, `prod`
  writes JSON at info level. Every line carries the `env` value.
- `http_server.address` is `host:port`. When it is empty the service
  listens on port 80 of every interface. `timeout` and `idle_timeout` are
  read as durations (`4s`, `1h30m`, `250ms`, ...) but do not change how the
  server behaves.
- `datasource.type` is `in_memmory` or `postgres`; any other value stops
  start-up with `ValueError("Invalid datasource type")`. For `postgres` the
  service connects to
  `postgresql://<username>:<password>@<host>/<batabase_name>?sslmode=disable`
  and creates the tables `messanger_user` and `chats` and their id
  sequences if they are missing.

`petmsngr.config.load_config(path=None)` loads this file (from
`CONFIG_PATH` when no path is given) and returns a frozen `Config`; a
missing variable, an unreadable file or a malformed document raises
`ConfigError`.

## Running

```
CONFIG_PATH=config.yaml petmsngr
```

The command exits with status 1 if the configuration cannot be loaded or
the server cannot start.

## HTTP API

| Method | Path                          | Body / parameters                           |
|--------|-------------------------------|---------------------------------------------|
| POST   | `/api/v1/user/sign-up`        | `{"login": "alice"}`                        |
| POST   | `/api/v1/chat`                | `{"first_user_id": 1, "second_user_id": 2}` |
| GET    | `/api/v1/chat/user/{user_id}` | lists the chats the user is a member of     |
| GET    | `/ws?chat_id=1&user_id=1`     | upgrades the connection to a WebSocket      |

Sign-up and chat creation answer `{"status": "OK"}` on success. Errors
answer `{"status": "ERROR", "error": "..."}`: HTTP 400 for a malformed body,
a missing or zero field, or a non-integer path or query parameter; HTTP 500
when the operation itself fails (for example a chat between users that do
not exist).

The chat list is a JSON array of objects of this shape:

```json
{"Id": {"Value": 1}, "FirstUser": {"Value": 1}, "SecondUser": {"Value": 2}, "Created": "2024-01-01T12:00:00"}
```

With in-memory storage, a user with no chats gets HTTP 500 with
`there is no chats for user id = [<id>]`; with PostgreSQL storage the list
is empty.

### WebSocket

Each client sends JSON of this form:

```json
{"user_id": 1, "chat_id": 1, "payload": "hello"}
```

The `payload` text is sent to every client connected to that chat whose
user id differs from `user_id`. A message that is not valid JSON closes the
sender's connection.

## Using it as a library

```python
from petmsngr.domain import UserId
from petmsngr.memory import ChatInMemoryRepository, UserInMemoryRepository
from petmsngr.usecases import CreateChatUseCase, GetUserChatsUseCase, UserSignUpUseCase

users = UserInMemoryRepository()
chats = ChatInMemoryRepository()

UserSignUpUseCase(users, users).execute("alice")
CreateChatUseCase(chats, chats, users).execute(UserId(1), UserId(1))
print(GetUserChatsUseCase(chats).execute(UserId(1)))
```

- `petmsngr.domain` holds the frozen records `User`, `Chat`, `ChatMessage`
  and their id types, and `MessageStatus` with `parse_message_status`.
- `petmsngr.memory` and `petmsngr.postgres` hold the repositories for
  users, chats and messages; each one is accessor, persistence and id
  generator at once. Lookups of a missing record raise `NotFoundError`
  (in memory) or `RepositoryError` / `NotFoundError` (PostgreSQL).
- `petmsngr.usecases` holds the use cases; failures raise `UseCaseError`.
- `petmsngr.routes` holds the request handlers and `ClientStorage`, which
  groups WebSocket clients by chat.
- `petmsngr.app.create_app(config, log)` builds the `aiohttp` application
  that the `petmsngr` command serves.

## Limitations

- Chat messages are not stored. WebSocket messages are only relayed to the
  clients connected at that moment; `HandleChatMessageUseCase.handle` does
  nothing and returns `""`, and the message repositories are not used by
  any route.
- The in-memory id generators return the highest id already stored (or 1
  when empty), not a new one, so a second sign-up replaces the user with
  that id. The PostgreSQL repositories draw fresh ids from sequences.
- There is no authentication: any client may act as any user id.