"""Storage of pull requests, their statuses and reviewer assignments."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from prassign.db import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, Database, DatabaseError
from prassign.entity import PRReviewer, PullRequest, Status
from prassign.errors import (
    AuthorNotFound,
    CannotFetchPRs,
    PRAlreadyExists,
    PRNotFound,
    ReviewerAlreadyAssigned,
    ReviewerNotFound,
    StatusNotFound,
)
from prassign.user_repository import _parse_time

log = logging.getLogger(__name__)

_PR_COLUMNS = (
    "p.id AS id, p.title AS title, p.author_id AS author_id, p.status_id AS status_id, "
    "s.name AS status_name, p.need_more_reviewers AS need_more_reviewers, "
    "p.created_at AS created_at, p.merged_at AS merged_at"
)
_PR_FROM = "FROM pr AS p LEFT JOIN pr_status AS s ON p.status_id = s.id"


def _format_time(value: datetime) -> str:
    if value.tzinfo is not None:
        text = value.astimezone(timezone.utc).isoformat(timespec="microseconds")
        return text.replace("+00:00", "Z")
    return value.isoformat(timespec="microseconds")


def _row_to_pr(row: Mapping[str, Any], reviewers: Iterable[str] = ()) -> PullRequest:
    return PullRequest(
        id=row["id"],
        title=row["title"],
        author_id=row["author_id"],
        status=Status(id=int(row["status_id"]), name=row["status_name"] or ""),
        need_more_reviewers=bool(row["need_more_reviewers"]),
        created_at=_parse_time(row["created_at"]),
        merged_at=_parse_time(row["merged_at"]),
        reviewers=list(reviewers),
    )


def _row_to_reviewer(row: Mapping[str, Any]) -> PRReviewer:
    return PRReviewer(
        id=row["id"],
        pr_id=row["pr_id"],
        reviewer_id=row["reviewer_id"],
        assigned_at=_parse_time(row["assigned_at"]),
    )


def _reviewer_error(err: DatabaseError, pr_id: str, operation: str) -> Exception:
    if err.code == UNIQUE_VIOLATION:
        log.warning("PRRepository.%s: reviewer already assigned to PR %s", operation, pr_id)
        return ReviewerAlreadyAssigned()
    if err.code == FOREIGN_KEY_VIOLATION:
        log.warning("PRRepository.%s: reviewer not found for PR %s", operation, pr_id)
        return ReviewerNotFound()
    log.error("PRRepository.%s: failed to assign reviewers to PR: %s", operation, err)
    return err


class PRRepository:
    """Reads and writes pull requests and reviewer assignments."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def _reviewer_ids(self, pr_id: str) -> list[str]:
        rows = self._db.execute(
            "SELECT reviewer_id FROM pr_reviewer WHERE pr_id = ? ORDER BY rowid", [pr_id]
        ).rows
        return [row["reviewer_id"] for row in rows]

    def create(
        self, pr_id: str, title: str, author_id: str, status_name: str, need_more_reviewers: bool
    ) -> PullRequest:
        """Insert a pull request in the named status and return it."""
        log.info("PRRepository.create: creating PR with title %s", title)

        with self._db.transaction():
            try:
                result = self._db.execute(
                    "INSERT INTO pr (id, title, author_id, need_more_reviewers, status_id) "
                    "SELECT ?, ?, ?, ?, s.id FROM pr_status AS s WHERE s.name = ?",
                    [pr_id, title, author_id, int(need_more_reviewers), str(status_name)],
                )
            except DatabaseError as err:
                if err.code == UNIQUE_VIOLATION:
                    log.warning("PRRepository.create: PR already exists: %s", title)
                    raise PRAlreadyExists() from err
                if err.code == FOREIGN_KEY_VIOLATION:
                    log.warning("PRRepository.create: author not found for PR %s", title)
                    raise AuthorNotFound() from err
                log.error("PRRepository.create: failed to create PR: %s", err)
                raise
            if result.rowcount == 0:
                log.warning("PRRepository.create: no status named %s", status_name)
                raise StatusNotFound()
            row = self._db.execute(f"SELECT {_PR_COLUMNS} {_PR_FROM} WHERE p.id = ?", [pr_id]).first()

        return _row_to_pr(row)

    def assign_reviewers(self, pr_id: str, reviewer_ids: list[str]) -> None:
        """Assign several reviewers at once; an empty list changes nothing."""
        log.info("PRRepository.assign_reviewers: assigning reviewers to PR %s", pr_id)
        if not reviewer_ids:
            return

        placeholders = ", ".join("(?, ?)" for _ in reviewer_ids)
        params = [value for reviewer_id in reviewer_ids for value in (pr_id, reviewer_id)]
        try:
            self._db.execute(
                f"INSERT INTO pr_reviewer (pr_id, reviewer_id) VALUES {placeholders}", params
            )
        except DatabaseError as err:
            raise _reviewer_error(err, pr_id, "assign_reviewers") from err

        log.info("PRRepository.assign_reviewers: reviewers assigned to PR %s", pr_id)

    def assign_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        """Assign one reviewer to the pull request."""
        log.info("PRRepository.assign_reviewer: assigning reviewer %s to PR %s", reviewer_id, pr_id)
        try:
            self._db.execute(
                "INSERT INTO pr_reviewer (pr_id, reviewer_id) VALUES (?, ?)", [pr_id, reviewer_id]
            )
        except DatabaseError as err:
            raise _reviewer_error(err, pr_id, "assign_reviewer") from err

        log.info("PRRepository.assign_reviewer: reviewer assigned to PR %s", pr_id)

    def reassign_reviewer(self, pr_id: str, old_reviewer_id: str, new_reviewer_id: str) -> None:
        """Replace one reviewer of the pull request with another."""
        log.info("PRRepository.reassign_reviewer: reassigning reviewer for PR %s", pr_id)
        try:
            self._db.execute(
                "UPDATE pr_reviewer SET reviewer_id = ? WHERE pr_id = ? AND reviewer_id = ?",
                [new_reviewer_id, pr_id, old_reviewer_id],
            )
        except DatabaseError as err:
            if err.code == FOREIGN_KEY_VIOLATION:
                log.warning("PRRepository.reassign_reviewer: new reviewer not found for PR %s", pr_id)
                raise ReviewerNotFound() from err
            log.error("PRRepository.reassign_reviewer: failed to reassign reviewer for PR: %s", err)
            raise

        log.info("PRRepository.reassign_reviewer: reviewer reassigned for PR %s", pr_id)

    def get_by_id(self, pr_id: str) -> PullRequest:
        """Return the pull request with its reviewer IDs."""
        log.info("PRRepository.get_by_id: getting PR by ID %s", pr_id)

        with self._db.transaction():
            row = self._db.execute(f"SELECT {_PR_COLUMNS} {_PR_FROM} WHERE p.id = ?", [pr_id]).first()
            if row is None:
                log.warning("PRRepository.get_by_id: no PR with ID %s", pr_id)
                raise PRNotFound()
            reviewers = self._reviewer_ids(pr_id)

        return _row_to_pr(row, reviewers)

    def update_status(self, pr_id: str, status_id: int, merged_at: datetime) -> None:
        """Set the status and merge time of the pull request."""
        log.info("PRRepository.update_status: updating status for PR %s", pr_id)

        result = self._db.execute(
            "UPDATE pr SET status_id = ?, merged_at = ? WHERE id = ?",
            [status_id, _format_time(merged_at), pr_id],
        )
        if result.rowcount == 0:
            log.warning("PRRepository.update_status: no PR with ID %s to update", pr_id)
            raise PRNotFound()

    def update_need_more_reviewers(self, pr_id: str) -> None:
        """Record that the pull request has enough reviewers."""
        log.info("PRRepository.update_need_more_reviewers: updating flag for PR %s", pr_id)

        result = self._db.execute("UPDATE pr SET need_more_reviewers = 0 WHERE id = ?", [pr_id])
        if result.rowcount == 0:
            log.warning("PRRepository.update_need_more_reviewers: no PR with ID %s to update", pr_id)
            raise PRNotFound()

    def get_reviewers_by_pr(self, pr_id: str) -> list[PRReviewer]:
        """Return the reviewer assignments of the pull request."""
        rows = self._db.execute(
            "SELECT id, pr_id, reviewer_id, assigned_at FROM pr_reviewer WHERE pr_id = ? ORDER BY rowid",
            [pr_id],
        ).rows
        return [_row_to_reviewer(row) for row in rows]

    def list_by_reviewer(self, reviewer_id: str) -> list[PullRequest]:
        """Return the pull requests the user reviews, without reviewer lists."""
        rows = self._db.execute(
            f"SELECT {_PR_COLUMNS} FROM pr AS p "
            "JOIN pr_reviewer AS r ON p.id = r.pr_id "
            "LEFT JOIN pr_status AS s ON p.status_id = s.id "
            "WHERE r.reviewer_id = ? ORDER BY r.rowid",
            [reviewer_id],
        ).rows
        return [_row_to_pr(row) for row in rows]

    def get_pr_statuses(self) -> list[Status]:
        """Return every known pull request status."""
        rows = self._db.execute("SELECT id, name FROM pr_status ORDER BY id").rows
        return [Status(id=int(row["id"]), name=row["name"]) for row in rows]

    def get_status_by_status_id(self, status_id: int) -> Status:
        """Return the status with the given ID."""
        row = self._db.execute("SELECT id, name FROM pr_status WHERE id = ?", [status_id]).first()
        if row is None:
            log.warning("PRRepository.get_status_by_status_id: no PR status with ID %d", status_id)
            raise StatusNotFound()
        return Status(id=int(row["id"]), name=row["name"])

    def get_all(self, limit: int, offset: int) -> tuple[list[PullRequest], int]:
        """Return one page of pull requests and the total number of them.

        Open pull requests come first, newest first within a status.
        """
        log.info("PRRepository.get_all called")
        try:
            with self._db.transaction():
                rows = self._db.execute(
                    f"SELECT {_PR_COLUMNS} {_PR_FROM} "
                    "ORDER BY p.status_id ASC, p.created_at DESC, p.rowid DESC LIMIT ? OFFSET ?",
                    [limit, offset],
                ).rows
                prs = [_row_to_pr(row, self._reviewer_ids(row["id"])) for row in rows]
                total_row = self._db.execute("SELECT COUNT(*) AS total FROM pr").first()
        except DatabaseError as err:
            log.error("PRRepository.get_all error: %s", err)
            raise CannotFetchPRs() from err

        total = int(total_row["total"]) if total_row else 0
        log.info("PRRepository.get_all success: count=%d", len(prs))
        return prs, total