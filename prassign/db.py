"""SQLite-backed storage: connection, transactions and schema migrations."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterator, Sequence

log = logging.getLogger(__name__)

DEFAULT_CONN_ATTEMPTS = 10
DEFAULT_CONN_TIMEOUT = timedelta(seconds=1)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class DatabaseError(Exception):
    """Raised when the database cannot be reached or a statement fails.

    ``code`` carries the SQLSTATE-style code of constraint violations.
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class QueryResult:
    """Rows returned by a statement and the number of rows it changed."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> dict[str, Any] | None:
        """Return the first row, or None when there is none."""
        return self.rows[0] if self.rows else None


def _parse_url(url: str) -> tuple[str, bool]:
    if url.startswith("sqlite://"):
        rest = url[len("sqlite://"):]
        if rest.startswith("/"):
            rest = rest[1:]
        return (rest or ":memory:"), False
    if url.startswith("file:"):
        return url, True
    if "://" in url or not url:
        raise DatabaseError(f"database - parse url: unsupported database url {url!r}")
    return url, False


def _seconds(value: timedelta | float) -> float:
    return value.total_seconds() if isinstance(value, timedelta) else float(value)


class Database:
    """A single shared connection with transactions that nest by joining."""

    def __init__(
        self,
        url: str,
        conn_attempts: int = DEFAULT_CONN_ATTEMPTS,
        conn_timeout: timedelta | float = DEFAULT_CONN_TIMEOUT,
    ) -> None:
        target, is_uri = _parse_url(url)
        self._lock = threading.RLock()
        self._depth = 0
        self._conn: sqlite3.Connection | None = None

        attempts = conn_attempts
        last_error: Exception | None = None
        while attempts > 0:
            try:
                conn = sqlite3.connect(
                    target, uri=is_uri, check_same_thread=False, isolation_level=None
                )
                conn.execute("SELECT 1")
                conn.execute("PRAGMA foreign_keys = ON")
            except sqlite3.Error as err:
                last_error = err
                log.info("Database is trying to connect, attempts left: %d", attempts)
                attempts -= 1
                time.sleep(_seconds(conn_timeout))
                continue
            self._conn = conn
            return

        raise DatabaseError(f"database - connect - no attempts left: {last_error}")

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("database is closed")
        return self._conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> QueryResult:
        """Run one statement with ``?`` placeholders and return its result."""
        with self._lock:
            conn = self._require()
            try:
                cursor = conn.execute(sql, tuple(params or ()))
                rows: list[dict[str, Any]] = []
                if cursor.description:
                    names = [column[0] for column in cursor.description]
                    rows = [dict(zip(names, row)) for row in cursor.fetchall()]
                return QueryResult(rows=rows, rowcount=cursor.rowcount)
            except sqlite3.IntegrityError as err:
                text = str(err)
                code = None
                if "UNIQUE" in text or "PRIMARY KEY" in text:
                    code = UNIQUE_VIOLATION
                elif "FOREIGN KEY" in text:
                    code = FOREIGN_KEY_VIOLATION
                raise DatabaseError(text, code) from err
            except sqlite3.Error as err:
                raise DatabaseError(str(err)) from err

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block in a transaction: commit on success, roll back on error.

        A transaction opened inside another one joins the outer transaction.
        """
        with self._lock:
            conn = self._require()
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            try:
                conn.execute("BEGIN")
            except sqlite3.Error as err:
                raise DatabaseError(f"database - begin transaction: {err}") from err

            self._depth = 1
            try:
                yield
            except BaseException:
                self._depth = 0
                conn.execute("ROLLBACK")
                raise
            self._depth = 0
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as err:
                conn.execute("ROLLBACK")
                raise DatabaseError(f"database - commit transaction: {err}") from err

    def close(self) -> None:
        """Close the connection; closing twice does nothing."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_NOW = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"
_RANDOM_ID = "(lower(hex(randomblob(16))))"

_MIGRATIONS: tuple[tuple[str, ...], ...] = (
    (
        f"""CREATE TABLE IF NOT EXISTS team (
            id TEXT PRIMARY KEY DEFAULT {_RANDOM_ID},
            name TEXT NOT NULL UNIQUE,
            created_at TEXT NOT NULL DEFAULT {_NOW}
        )""",
        f"""CREATE TABLE IF NOT EXISTS app_user (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            team_id TEXT REFERENCES team(id),
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT {_NOW}
        )""",
        "CREATE INDEX IF NOT EXISTS idx_app_user_team_id ON app_user(team_id)",
        """CREATE TABLE IF NOT EXISTS pr_status (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        )""",
        "INSERT OR IGNORE INTO pr_status (id, name) VALUES (1, 'OPEN'), (2, 'MERGED')",
        f"""CREATE TABLE IF NOT EXISTS pr (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            author_id TEXT NOT NULL REFERENCES app_user(id),
            status_id INTEGER NOT NULL REFERENCES pr_status(id),
            need_more_reviewers INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT {_NOW},
            merged_at TEXT
        )""",
        f"""CREATE TABLE IF NOT EXISTS pr_reviewer (
            id TEXT PRIMARY KEY DEFAULT {_RANDOM_ID},
            pr_id TEXT NOT NULL REFERENCES pr(id),
            reviewer_id TEXT NOT NULL REFERENCES app_user(id),
            assigned_at TEXT NOT NULL DEFAULT {_NOW},
            UNIQUE (pr_id, reviewer_id)
        )""",
        "CREATE INDEX IF NOT EXISTS idx_pr_reviewer_reviewer_id ON pr_reviewer(reviewer_id)",
    ),
)


def run_migrations(db: Database) -> int:
    """Apply every pending schema migration and return the schema version."""
    try:
        with db.transaction():
            row = db.execute("PRAGMA user_version").first()
            current = int(next(iter(row.values()))) if row else 0
            for version, statements in enumerate(_MIGRATIONS, start=1):
                if version <= current:
                    continue
                for statement in statements:
                    db.execute(statement)
                db.execute(f"PRAGMA user_version = {version:d}")
                current = version
    except DatabaseError as err:
        raise DatabaseError(f"failed to apply migrations: {err}", err.code) from err

    log.info("Migrations applied. Current version: %d", current)
    return current