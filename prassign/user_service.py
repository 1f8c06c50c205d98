"""Business rules for users: activity status and review lists."""

from __future__ import annotations

import logging
from typing import Protocol

from prassign import errors as repo_errors
from prassign.entity import PullRequest, User
from prassign.transactor import Transactor

log = logging.getLogger(__name__)


class _UserRepo(Protocol):
    def get_by_id(self, user_id: str) -> User: ...

    def set_active_status(self, user_id: str, is_active: bool) -> None: ...


class _PullRequestRepo(Protocol):
    def list_by_reviewer(self, reviewer_id: str) -> list[PullRequest]: ...


class UserServiceError(Exception):
    """Base class for errors raised by the user service."""

    message = "user service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class UserNotFound(UserServiceError):
    message = "user not found"


class CannotSetUserStatus(UserServiceError):
    message = "cannot set user status"


class CannotGetUserReviews(UserServiceError):
    message = "cannot get user reviews"


class UserService:
    """Operations on users."""

    def __init__(self, user_repo: _UserRepo, pr_repo: _PullRequestRepo, tx_manager: Transactor) -> None:
        self._user_repo = user_repo
        self._pr_repo = pr_repo
        self._tx = tx_manager

    def set_user_status(self, user_id: str, is_active: bool) -> User:
        """Set whether the user is active and return the updated user."""
        log.info("UserService.set_user_status: setting user %s active status to %s", user_id, is_active)

        try:
            self._user_repo.set_active_status(user_id, is_active)
        except repo_errors.UserNotFound as err:
            raise UserNotFound() from err
        except Exception as err:
            log.error("UserService.set_user_status: failed to set active status for user %s: %s", user_id, err)
            raise CannotSetUserStatus() from err

        try:
            user = self._user_repo.get_by_id(user_id)
        except repo_errors.UserNotFound as err:
            raise UserNotFound() from err
        except Exception as err:
            log.error("UserService.set_user_status: failed to get user %s after status update: %s", user_id, err)
            raise CannotSetUserStatus() from err

        log.info("UserService.set_user_status: user %s active status set to %s", user_id, is_active)
        return user

    def get_user_reviews(self, user_id: str) -> list[PullRequest]:
        """Return the pull requests the user is assigned to review."""
        log.info("UserService.get_user_reviews: fetching prs for user %s", user_id)

        try:
            with self._tx.transaction():
                self._user_repo.get_by_id(user_id)
                prs = self._pr_repo.list_by_reviewer(user_id)
        except repo_errors.UserNotFound as err:
            raise UserNotFound() from err
        except Exception as err:
            log.error("UserService.get_user_reviews: failed to list PRs for reviewer %s: %s", user_id, err)
            raise CannotGetUserReviews() from err

        log.info("UserService.get_user_reviews: fetched %d PRs for user %s", len(prs), user_id)
        return prs