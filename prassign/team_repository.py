"""Storage of teams in the ``team`` table."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from prassign.db import UNIQUE_VIOLATION, Database, DatabaseError
from prassign.entity import Team, User
from prassign.errors import CannotFetchTeams, TeamAlreadyExists, TeamNotFound
from prassign.user_repository import _USER_COLUMNS, _parse_time, _parse_uuid, _row_to_user

log = logging.getLogger(__name__)


def _row_to_team(row: Mapping[str, Any]) -> Team:
    return Team(
        id=_parse_uuid(row["id"]),
        name=row["name"],
        created_at=_parse_time(row["created_at"]),
    )


class TeamRepository:
    """Reads and writes teams."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, name: str) -> Team:
        """Insert a team and return it with its ID and creation time."""
        log.info("TeamRepository.create: creating team with name %s", name)

        with self._db.transaction():
            try:
                self._db.execute("INSERT INTO team (name) VALUES (?)", [name])
            except DatabaseError as err:
                if err.code == UNIQUE_VIOLATION:
                    log.warning("TeamRepository.create: team already exists: %s", name)
                    raise TeamAlreadyExists() from err
                log.error("TeamRepository.create: failed to create team: %s", err)
                raise
            row = self._db.execute(
                "SELECT id, name, created_at FROM team WHERE name = ?", [name]
            ).first()

        log.info("TeamRepository.create: team created: %s", name)
        return _row_to_team(row)

    def get_by_name(self, name: str) -> Team:
        """Return the team with the given name, without members."""
        log.info("TeamRepository.get_by_name: getting team by name %s", name)

        row = self._db.execute(
            "SELECT id, name, created_at FROM team WHERE name = ?", [name]
        ).first()
        if row is None:
            log.warning("TeamRepository.get_by_name: team not found: %s", name)
            raise TeamNotFound()
        return _row_to_team(row)

    def get_all(self, limit: int, offset: int) -> tuple[list[Team], int]:
        """Return one page of teams, newest first, and the total number of teams."""
        log.info("TeamRepository.get_all called")

        try:
            rows = self._db.execute(
                "SELECT id, name, created_at FROM team ORDER BY created_at DESC LIMIT ? OFFSET ?",
                [limit, offset],
            ).rows
            teams = [_row_to_team(row) for row in rows]
            total_row = self._db.execute("SELECT COUNT(*) AS total FROM team").first()
        except DatabaseError as err:
            log.error("TeamRepository.get_all error: %s", err)
            raise CannotFetchTeams() from err

        total = int(total_row["total"]) if total_row else 0
        log.info("TeamRepository.get_all success: count=%d", len(teams))
        return teams, total

    def deactivate_team_members(self, team_name: str) -> list[User]:
        """Mark every active member of the team inactive and return them."""
        log.info("TeamRepository.deactivate_team_members: deactivating users of team %s", team_name)

        with self._db.transaction():
            rows = self._db.execute(
                f"SELECT {_USER_COLUMNS} FROM app_user AS u "
                "JOIN team AS t ON u.team_id = t.id "
                "WHERE t.name = ? AND u.is_active = 1",
                [team_name],
            ).rows
            if rows:
                ids = [row["id"] for row in rows]
                placeholders = ", ".join("?" for _ in ids)
                self._db.execute(
                    f"UPDATE app_user SET is_active = 0 WHERE id IN ({placeholders})", ids
                )

        users = [_row_to_user({**row, "is_active": 0}) for row in rows]
        log.info("TeamRepository.deactivate_team_members: deactivated %d users", len(users))
        return users