"""Storage of users in the ``app_user`` table."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from prassign.db import UNIQUE_VIOLATION, Database, DatabaseError
from prassign.entity import Team, User
from prassign.errors import UserAlreadyExists, UserNotFound

log = logging.getLogger(__name__)

_USER_COLUMNS = (
    "u.id AS id, u.name AS name, u.is_active AS is_active, u.team_id AS team_id, "
    "t.name AS team_name, u.created_at AS created_at"
)


def _parse_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _parse_uuid(value: Any) -> UUID | None:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def _team_key(team_id: UUID | str | None) -> str | None:
    if team_id is None:
        return None
    if isinstance(team_id, UUID):
        return team_id.hex
    return UUID(str(team_id)).hex


def _row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        is_active=bool(row["is_active"]),
        team=Team(id=_parse_uuid(row["team_id"]), name=row["team_name"] or ""),
        created_at=_parse_time(row["created_at"]),
    )


def _exclusion(exclude_ids: tuple[str, ...]) -> tuple[str, list[str]]:
    if not exclude_ids:
        return "", []
    placeholders = ", ".join("?" for _ in exclude_ids)
    return f" AND u.id NOT IN ({placeholders})", list(exclude_ids)


class UserRepository:
    """Reads and writes users."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, user_id: str, name: str, team_id: UUID | None, is_active: bool) -> User:
        """Insert a user and return it with its creation time."""
        log.info("UserRepository.create: creating user with name %s", name)

        with self._db.transaction():
            try:
                self._db.execute(
                    "INSERT INTO app_user (id, name, team_id, is_active) VALUES (?, ?, ?, ?)",
                    [user_id, name, _team_key(team_id), int(is_active)],
                )
            except DatabaseError as err:
                if err.code == UNIQUE_VIOLATION:
                    raise UserAlreadyExists() from err
                log.error("UserRepository.create: failed to create user: %s", err)
                raise
            row = self._db.execute("SELECT created_at FROM app_user WHERE id = ?", [user_id]).first()

        log.info("UserRepository.create: user created with ID %s", user_id)
        return User(
            id=user_id,
            name=name,
            is_active=is_active,
            team=Team(id=team_id),
            created_at=_parse_time(row["created_at"]) if row else None,
        )

    def get_by_id(self, user_id: str) -> User:
        """Return the user with its team name."""
        log.info("UserRepository.get_by_id: getting user by ID %s", user_id)

        row = self._db.execute(
            f"SELECT {_USER_COLUMNS} FROM app_user AS u "
            "LEFT JOIN team AS t ON u.team_id = t.id WHERE u.id = ?",
            [user_id],
        ).first()
        if row is None:
            raise UserNotFound()
        return _row_to_user(row)

    def get_by_team_id(self, team_id: UUID | None) -> list[User]:
        """Return every member of the team."""
        log.info("UserRepository.get_by_team_id: getting users by team ID %s", team_id)

        rows = self._db.execute(
            f"SELECT {_USER_COLUMNS} FROM app_user AS u "
            "JOIN team AS t ON u.team_id = t.id WHERE u.team_id = ?",
            [_team_key(team_id)],
        ).rows
        users = [_row_to_user(row) for row in rows]
        log.info("UserRepository.get_by_team_id: found %d users for team ID %s", len(users), team_id)
        return users

    def set_team_id(self, user_id: str, team_id: UUID | None) -> None:
        """Move the user to another team."""
        log.info("UserRepository.set_team_id: setting team ID %s for user ID %s", team_id, user_id)

        result = self._db.execute(
            "UPDATE app_user SET team_id = ? WHERE id = ?", [_team_key(team_id), user_id]
        )
        if result.rowcount == 0:
            raise UserNotFound()

    def set_active_status(self, user_id: str, is_active: bool) -> None:
        """Mark the user active or inactive."""
        log.info("UserRepository.set_active_status: setting is_active=%s for user ID %s", is_active, user_id)

        result = self._db.execute(
            "UPDATE app_user SET is_active = ? WHERE id = ?", [int(is_active), user_id]
        )
        if result.rowcount == 0:
            raise UserNotFound()

    def get_random_active_teammates(self, team_id: UUID | None, limit: int, *exclude_ids: str) -> list[User]:
        """Return up to *limit* random active members of the team, skipping *exclude_ids*."""
        log.info(
            "UserRepository.get_random_active_teammates: getting up to %d random active teammates for team ID %s",
            limit,
            team_id,
        )

        clause, excluded = _exclusion(exclude_ids)
        rows = self._db.execute(
            f"SELECT {_USER_COLUMNS} FROM app_user AS u "
            "JOIN team AS t ON u.team_id = t.id "
            f"WHERE u.team_id = ? AND u.is_active = 1{clause} "
            "ORDER BY RANDOM() LIMIT ?",
            [_team_key(team_id), *excluded, limit],
        ).rows
        users = [_row_to_user(row) for row in rows]
        log.info("UserRepository.get_random_active_teammates: found %d random active teammates", len(users))
        return users

    def get_random_active_users(self, limit: int, *exclude_ids: str) -> list[User]:
        """Return up to *limit* random active users of any team, skipping *exclude_ids*."""
        log.info(
            "UserRepository.get_random_active_users: getting %d random active users, excluding %s",
            limit,
            list(exclude_ids),
        )

        clause, excluded = _exclusion(exclude_ids)
        rows = self._db.execute(
            f"SELECT {_USER_COLUMNS} FROM app_user AS u "
            "JOIN team AS t ON u.team_id = t.id "
            f"WHERE u.is_active = 1{clause} "
            "ORDER BY RANDOM() LIMIT ?",
            [*excluded, limit],
        ).rows
        return [_row_to_user(row) for row in rows]