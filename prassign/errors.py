"""Errors raised by the storage layer."""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for storage errors."""

    message = "repository error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class UserAlreadyExists(RepositoryError):
    message = "user already exists"


class UserNotFound(RepositoryError):
    message = "user not found"


class TeamAlreadyExists(RepositoryError):
    message = "team already exists"


class TeamNotFound(RepositoryError):
    message = "team not found"


class CannotFetchTeams(RepositoryError):
    message = "cannot fetch teams"


class PRNotFound(RepositoryError):
    message = "pull request not found"


class PRAlreadyExists(RepositoryError):
    message = "pull request already exists"


class ReviewerAlreadyAssigned(RepositoryError):
    message = "reviewer already assigned to this pull request"


class ReviewerNotFound(RepositoryError):
    message = "reviewer not found"


class AuthorNotFound(RepositoryError):
    message = "author not found"


class CannotFetchPRs(RepositoryError):
    message = "cannot fetch PRs"


class StatusNotFound(RepositoryError):
    message = "status not found"