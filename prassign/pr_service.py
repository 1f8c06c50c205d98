"""Business rules for pull requests: creation, merging and reviewer assignment."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID

from prassign import errors as repo_errors
from prassign.entity import (
    MIN_AMOUNT_OF_REVIEWERS,
    PRReviewer,
    PRStatusName,
    PullRequest,
    Status,
    User,
)
from prassign.transactor import Transactor

log = logging.getLogger(__name__)


class _PRRepo(Protocol):
    def create(
        self, pr_id: str, title: str, author_id: str, status_name: str, need_more_reviewers: bool
    ) -> PullRequest: ...

    def get_all(self, limit: int, offset: int) -> tuple[list[PullRequest], int]: ...

    def assign_reviewers(self, pr_id: str, reviewer_ids: list[str]) -> None: ...

    def reassign_reviewer(self, pr_id: str, old_reviewer_id: str, new_reviewer_id: str) -> None: ...

    def get_by_id(self, pr_id: str) -> PullRequest: ...

    def update_status(self, pr_id: str, status_id: int, merged_at: datetime) -> None: ...

    def get_reviewers_by_pr(self, pr_id: str) -> list[PRReviewer]: ...

    def get_pr_statuses(self) -> list[Status]: ...

    def get_status_by_status_id(self, status_id: int) -> Status: ...

    def assign_reviewer(self, pr_id: str, reviewer_id: str) -> None: ...

    def update_need_more_reviewers(self, pr_id: str) -> None: ...


class _UserRepo(Protocol):
    def get_by_id(self, user_id: str) -> User: ...

    def get_random_active_teammates(self, team_id: UUID | None, limit: int, *exclude_ids: str) -> list[User]: ...


class PRServiceError(Exception):
    """Base class for errors raised by the pull request service."""

    message = "pull request service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class PRAlreadyExists(PRServiceError):
    message = "PR already exists"


class PRNotFound(PRServiceError):
    message = "PR not found"


class AuthorNotFound(PRServiceError):
    message = "author not found"


class CannotFetchPRs(PRServiceError):
    message = "cannot fetch PRs"


class CannotCreatePR(PRServiceError):
    message = "cannot create PR"


class CannotMergePR(PRServiceError):
    message = "cannot merge PR"


class StatusNotFound(PRServiceError):
    message = "status not found"


class CannotFetchStatus(PRServiceError):
    message = "cannot fetch status"


class ReviewerNotFound(PRServiceError):
    message = "reviewer not found"


class CannotAssignReviewer(PRServiceError):
    message = "cannot assign reviewer"


class CannotReassignReviewerForMergedPR(PRServiceError):
    message = "cannot reassign reviewer for merged PR"


class ReviewerAlreadyAssigned(PRServiceError):
    message = "reviewer already assigned to PR"


class NoMoreReviewersToReassign(PRServiceError):
    message = "no more reviewers to reassign"


class PRAlreadyHas2Reviewers(PRServiceError):
    message = "PR already has 2 reviewers"


class PRService:
    """Operations on pull requests and their reviewers."""

    def __init__(self, pr_repo: _PRRepo, user_repo: _UserRepo, tx_manager: Transactor | None) -> None:
        self.pr_repo = pr_repo
        self.user_repo = user_repo
        self._tx = tx_manager

    def create_pr(self, pull_request_id: str, title: str, author_id: str) -> PullRequest:
        """Create a pull request and assign up to two active teammates of the author."""
        log.info("PRService.create_pr: creating PR with title %s", title)

        try:
            with self._tx.transaction():
                author = self.user_repo.get_by_id(author_id)
                candidates = self.user_repo.get_random_active_teammates(
                    author.team.id, MIN_AMOUNT_OF_REVIEWERS, author_id
                )
                reviewer_ids = [candidate.id for candidate in candidates]
                need_more_reviewers = len(reviewer_ids) < MIN_AMOUNT_OF_REVIEWERS

                pull_request = self.pr_repo.create(
                    pull_request_id, title, author_id, PRStatusName.OPEN.value, need_more_reviewers
                )
                self.pr_repo.assign_reviewers(pull_request_id, reviewer_ids)
                pull_request.reviewers = reviewer_ids
        except repo_errors.UserNotFound as err:
            raise AuthorNotFound() from err
        except repo_errors.PRAlreadyExists as err:
            raise PRAlreadyExists() from err
        except repo_errors.ReviewerAlreadyAssigned as err:
            raise ReviewerAlreadyAssigned() from err
        except repo_errors.ReviewerNotFound as err:
            raise ReviewerNotFound() from err
        except Exception as err:
            log.error("PRService.create_pr: fail: %s", err)
            raise CannotCreatePR() from err

        log.info("PRService.create_pr: created PR %s with ID %s", pull_request.title, pull_request.id)
        return pull_request

    def get_all_prs(self, page: int, page_size: int) -> tuple[list[PullRequest], int]:
        """Return one page of pull requests and the total number of them."""
        log.info("PRService.get_all_prs: fetching all PRs")

        limit = page_size
        offset = (page - 1) * page_size
        try:
            prs, total = self.pr_repo.get_all(limit, offset)
        except Exception as err:
            log.error("PRService.get_all_prs: failed to fetch PRs %s", err)
            raise CannotFetchPRs() from err

        log.info("PRService.get_all_prs: fetched %d PRs", len(prs))
        return prs, total

    def reassign_reviewer(self, pr_id: str, old_reviewer_id: str) -> tuple[PullRequest, str]:
        """Replace a reviewer with a random active teammate of theirs.

        Returns the updated pull request and the ID of the new reviewer.
        """
        log.info("PRService.reassign_reviewer: reassigning reviewer for PR %s", pr_id)

        try:
            with self._tx.transaction():
                pull_request = self.pr_repo.get_by_id(pr_id)
                if pull_request.status.name == PRStatusName.MERGED:
                    raise CannotReassignReviewerForMergedPR()

                old_reviewer = self.user_repo.get_by_id(old_reviewer_id)
                candidates = self.user_repo.get_random_active_teammates(
                    old_reviewer.team.id, 1, pull_request.author_id, old_reviewer_id
                )
                if not candidates:
                    raise NoMoreReviewersToReassign()
                new_reviewer = candidates[0]

                self.pr_repo.reassign_reviewer(pr_id, old_reviewer_id, new_reviewer.id)
        except NoMoreReviewersToReassign:
            raise
        except repo_errors.PRNotFound as err:
            raise PRNotFound() from err
        except (repo_errors.UserNotFound, repo_errors.ReviewerNotFound) as err:
            raise ReviewerNotFound() from err
        except Exception as err:
            log.error("PRService.reassign_reviewer: fail %s", err)
            raise CannotAssignReviewer() from err

        try:
            reviewers = self.pr_repo.get_reviewers_by_pr(pr_id)
        except Exception as err:
            log.error("PRService.reassign_reviewer: failed to get new reviewers for PR %s", err)
            raise ReviewerNotFound() from err

        pull_request.reviewers = [reviewer.reviewer_id for reviewer in reviewers]

        log.info("PRService.reassign_reviewer: new reviewer %s assigned to PR %s", new_reviewer.id, pr_id)
        return pull_request, new_reviewer.id

    def merge_pr(self, pr_id: str) -> PullRequest:
        """Mark the pull request as merged; merging twice is harmless."""
        log.info("PRService.merge_pr: merging PR %s", pr_id)

        try:
            pull_request = self.pr_repo.get_by_id(pr_id)
        except repo_errors.PRNotFound as err:
            raise PRNotFound() from err
        except Exception as err:
            log.error("PRService.merge_pr: failed to get PR %s: %s", pr_id, err)
            raise CannotMergePR() from err

        if pull_request.status.name == PRStatusName.MERGED:
            return pull_request

        try:
            statuses = self.pr_repo.get_pr_statuses()
        except Exception as err:
            log.error("PRService.merge_pr: failed to get PR statuses for PR %s: %s", pr_id, err)
            raise CannotFetchStatus() from err

        merged = next((status for status in statuses if status.name == PRStatusName.MERGED), None)
        if merged is None:
            raise StatusNotFound()

        try:
            self.pr_repo.update_status(pr_id, merged.id, datetime.now(timezone.utc))
        except repo_errors.PRNotFound as err:
            log.warning("PRService.merge_pr: PR with ID %s not found", pr_id)
            raise PRNotFound() from err
        except Exception as err:
            log.error("PRService.merge_pr: failed to update status for PR %s: %s", pr_id, err)
            raise CannotCreatePR() from err

        try:
            pull_request = self.pr_repo.get_by_id(pr_id)
        except Exception as err:
            log.error("PRService.merge_pr: failed to merge PR %s: %s", pr_id, err)
            raise CannotMergePR() from err

        log.info("PRService.merge_pr: successfully merged PR %s", pr_id)
        return pull_request

    def assign_reviewer(self, pr_id: str, new_reviewer_id: str) -> PullRequest:
        """Add a reviewer to a pull request that still needs one."""
        log.info("PRService.assign_reviewer: assigning new reviewer %s for PR %s", new_reviewer_id, pr_id)

        try:
            with self._tx.transaction():
                pull_request = self.pr_repo.get_by_id(pr_id)
                if not pull_request.need_more_reviewers:
                    raise PRAlreadyHas2Reviewers()

                self.pr_repo.assign_reviewer(pr_id, new_reviewer_id)

                # One reviewer before plus the new one makes enough.
                if pull_request.reviewers:
                    self.pr_repo.update_need_more_reviewers(pr_id)
        except PRAlreadyHas2Reviewers:
            raise
        except repo_errors.PRNotFound as err:
            raise PRNotFound() from err
        except repo_errors.ReviewerNotFound as err:
            raise ReviewerNotFound() from err
        except repo_errors.ReviewerAlreadyAssigned as err:
            raise ReviewerAlreadyAssigned() from err
        except Exception as err:
            log.error("PRService.assign_reviewer: failed to assign new reviewer %s: %s", new_reviewer_id, err)
            raise CannotAssignReviewer() from err

        try:
            reviewers = self.pr_repo.get_reviewers_by_pr(pr_id)
        except Exception as err:
            log.error("PRService.assign_reviewer: failed to get updated reviewers for PR %s: %s", pr_id, err)
            raise CannotAssignReviewer() from err

        pull_request.reviewers = [reviewer.reviewer_id for reviewer in reviewers]
        return pull_request