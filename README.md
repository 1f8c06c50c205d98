# prassign

prassign is a library for managing teams and the reviewers of their pull
requests. When a pull request is created, up to two random active teammates
of the author are assigned as reviewers. A reviewer can later be replaced by
another active teammate. A reviewer can also be added by hand while a pull
request still needs more. Pull requests can be merged, and merging twice is
harmless. A whole team can be deactivated. Its members are then replaced on
the pull requests they review by random active users from other teams.

Data is kept in SQLite.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Quick start

```python
from prassign.db import Database, run_migrations
from prassign.entity import User
from prassign.pr_repository import PRRepository
from prassign.pr_service import PRService
from prassign.team_repository import TeamRepository
from prassign.team_service import TeamService
from prassign.user_repository import UserRepository
from prassign.user_service import UserService

db = Database("sqlite://")          # in-memory database
run_migrations(db)                   # creates the schema, returns its version

users = UserRepository(db)
teams = TeamRepository(db)
prs = PRRepository(db)

team_service = TeamService(users, teams, prs, db)
pr_service = PRService(prs, users, db)
user_service = UserService(users, prs, db)

team_service.create_team_with_users("backend", [
    User(id="u1", name="Alice", is_active=True),
    User(id="u2", name="Bob", is_active=True),
    User(id="u3", name="Carol", is_active=True),
])

pr = pr_service.create_pr("pr-1", "Add search", "u1")
print(pr.status.name, pr.reviewers)   # OPEN, two of u2 / u3
```

## Modules

- `prassign.entity`: the dataclasses `Team`, `User`, `PullRequest`,
  `PRReviewer`, `Status` and the enum `PRStatusName` (`OPEN`, `MERGED`).
- `prassign.db`: `Database` is one shared SQLite connection. `execute(sql,
  params)` runs a statement with `?` placeholders. `transaction()` is a
  context manager that commits on success and rolls back on an exception.
  A transaction opened inside another one joins the outer one. `close()`
  closes the connection, and `Database` can also be used in a `with` block.
  Accepted URLs are `sqlite://` (in memory), `sqlite:///path/to/file.db`,
  `file:` URIs and plain file paths. Connecting is retried `conn_attempts`
  times (default 10), `conn_timeout` apart (default 1 second).
  `run_migrations(db)` applies pending schema versions. Failures raise
  `DatabaseError`.
- `prassign.user_repository`, `prassign.team_repository`,
  `prassign.pr_repository`: `UserRepository`, `TeamRepository` and
  `PRRepository` read and write the tables. Missing or duplicate rows raise
  the errors in `prassign.errors`, such as `UserNotFound`,
  `TeamAlreadyExists`, `PRNotFound` or `ReviewerAlreadyAssigned`. All of
  them derive from `RepositoryError`.
- `prassign.team_service`: `TeamService` has `create_team_with_users`,
  `get_team_with_members`, `get_all_teams(page, page_size)` and
  `deactivate_team_and_reassign_prs`.
- `prassign.pr_service`: `PRService` has `create_pr`,
  `get_all_prs(page, page_size)`, `reassign_reviewer` (returns the pull
  request and the new reviewer's ID), `merge_pr` and `assign_reviewer`.
- `prassign.user_service`: `UserService` has `set_user_status` and
  `get_user_reviews`.
- `prassign.transactor`: the `Transactor` protocol, which the services
  expect. Anything with a `transaction()` context manager will do, and
  `Database` is one.
- `prassign.dto`: JSON-ready dictionaries: `user_to_json`, `team_to_json`,
  `team_from_json`, `member_to_entity`, `pull_request_to_json`,
  `pull_request_short_to_json`. `error_body(code, message)` builds
  `{"error": {"code": ..., "message": ...}}`. `ErrorCode` holds
  `TEAM_EXISTS`, `PR_EXISTS`, `PR_MERGED`, `NOT_ASSIGNED` and `NOT_FOUND`.
- `prassign.config`: `load_config(path)` reads a YAML file into a frozen
  `Config`. `parse_duration` parses forms such as `500ms`, `5s` or `1m30s`.
- `prassign.httpserver`: `Server` runs any WSGI application in a background
  thread. It has `start()` and `shutdown()`. `notify()` returns a queue that
  receives the reason serving stopped.
- `prassign.logging_setup`: `init_logger(level)` configures coloured console
  output for the `prassign` logger. An unknown level name falls back to
  debug.
- `prassign.hasher`: `BcryptHasher` has `hash_password` and
  `check_password_hash`.

### Service errors

Each service raises its own exception classes, so callers never see storage
details. `PRService` raises subclasses of `PRServiceError`, such as
`PRNotFound`, `AuthorNotFound`, `PRAlreadyHas2Reviewers`,
`CannotReassignReviewerForMergedPR` and `NoMoreReviewersToReassign`.
`TeamService` raises subclasses of `TeamServiceError`, such as
`TeamAlreadyExists`, `TeamNotFound` and `CannotDeactivateTeam`.
`UserService` raises subclasses of `UserServiceError`, such as
`UserNotFound`.

```python
from prassign.pr_service import PRNotFound

try:
    pr_service.merge_pr("missing")
except PRNotFound:
    ...
```

Paged listings use `page` and `page_size`, and skip `(page - 1) * page_size`
items. They return the page together with the total count. Teams are listed
newest first. Pull requests are listed open ones first, newest first within
a status.

## Configuration file

```yaml
app:
  name: prassign
  version: 0.1.0
http:
  port: "8080"
postgres:
  url: "sqlite:///prassign.db"
  connect_timeout: 5s
logger:
  level: info
```

Every value is required. A missing value raises `ConfigError`. Environment
variables override the file when they are set:

| Key                        | Environment variable       |
|----------------------------|----------------------------|
| `app.name`                 | `APP_NAME`                 |
| `app.version`              | `APP_VERSION`              |
| `http.port`                | `SERVER_PORT`              |
| `postgres.url`             | `POSTGRES_URL`             |
| `postgres.connect_timeout` | `POSTGRES_CONNECT_TIMEOUT` |
| `logger.level`             | `LOG_LEVEL`                |

A bare integer given as `connect_timeout` counts nanoseconds. The
`postgres.url` value is what you pass to `Database`, so it must be one of the
SQLite forms listed above.

## Passwords

```python
from prassign.hasher import BcryptHasher

hasher = BcryptHasher()
hashed = hasher.hash_password("secret")
hasher.check_password_hash("secret", hashed)   # True
```

Passwords longer than 72 bytes raise `ValueError`.

## What the package does not do

- It has no HTTP routes or request handlers, and no command that starts a
  service. `prassign.httpserver.Server` and the JSON helpers in
  `prassign.dto` are building blocks. The WSGI application that maps
  requests to the services is yours to write.
- Storage is SQLite only. There is no client for a separate database server.