"""Business rules for teams: creation, lookup and deactivation."""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from prassign import errors as repo_errors
from prassign.entity import PullRequest, Team, User
from prassign.transactor import Transactor

log = logging.getLogger(__name__)


class _UserRepo(Protocol):
    def create(self, user_id: str, name: str, team_id: UUID | None, is_active: bool) -> User: ...

    def get_by_team_id(self, team_id: UUID | None) -> list[User]: ...

    def get_random_active_users(self, limit: int, *exclude_ids: str) -> list[User]: ...


class _TeamRepo(Protocol):
    def create(self, name: str) -> Team: ...

    def get_by_name(self, name: str) -> Team: ...

    def get_all(self, limit: int, offset: int) -> tuple[list[Team], int]: ...

    def deactivate_team_members(self, team_name: str) -> list[User]: ...


class _PRRepo(Protocol):
    def list_by_reviewer(self, reviewer_id: str) -> list[PullRequest]: ...

    def reassign_reviewer(self, pr_id: str, old_reviewer_id: str, new_reviewer_id: str) -> None: ...


class TeamServiceError(Exception):
    """Base class for errors raised by the team service."""

    message = "team service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class TeamAlreadyExists(TeamServiceError):
    message = "team already exists"


class TeamNotFound(TeamServiceError):
    message = "team not found"


class CannotCreateTeam(TeamServiceError):
    message = "cannot create team"


class CannotFetchTeam(TeamServiceError):
    message = "cannot fetch team"


class CannotFetchTeams(TeamServiceError):
    message = "cannot fetch teams"


class CannotDeactivateTeam(TeamServiceError):
    message = "cannot deactivate team"


class UserAlreadyExists(TeamServiceError):
    message = "user already exists"


class CannotFetchNewReviewer(TeamServiceError):
    message = "cannot fetch new reviewer"


class TeamService:
    """Operations on teams and their members."""

    def __init__(self, user_repo: _UserRepo, team_repo: _TeamRepo, pr_repo: _PRRepo, tx_manager: Transactor) -> None:
        self._user_repo = user_repo
        self._team_repo = team_repo
        self._pr_repo = pr_repo
        self._tx = tx_manager

    def create_team_with_users(self, team_name: str, users: list[User]) -> Team:
        """Create a team and its members in one transaction."""
        log.info("TeamService.create_team_with_users: creating team %s with %d users", team_name, len(users))

        try:
            with self._tx.transaction():
                team = self._team_repo.create(team_name)
                for user in users:
                    new_user = self._user_repo.create(user.id, user.name, team.id, user.is_active)
                    team.members.append(new_user)
        except repo_errors.TeamAlreadyExists as err:
            raise TeamAlreadyExists() from err
        except repo_errors.UserAlreadyExists as err:
            raise UserAlreadyExists() from err
        except Exception as err:
            log.error("TeamService.create_team_with_users: failed to create team %s: %s", team_name, err)
            raise CannotCreateTeam() from err

        return team

    def get_team_with_members(self, team_name: str) -> Team:
        """Return the named team with its members loaded."""
        log.info("TeamService.get_team_with_members: getting team %s with members", team_name)

        try:
            with self._tx.transaction():
                team = self._team_repo.get_by_name(team_name)
                team.members = self._user_repo.get_by_team_id(team.id)
        except repo_errors.TeamNotFound as err:
            log.warning("TeamService.get_team_with_members: team %s not found", team_name)
            raise TeamNotFound() from err
        except Exception as err:
            log.error("TeamService.get_team_with_members: failed to get team %s: %s", team_name, err)
            raise CannotFetchTeam() from err

        return team

    def get_all_teams(self, page: int, page_size: int) -> tuple[list[Team], int]:
        """Return one page of teams and the total number of teams."""
        log.info("TeamService.get_all_teams: fetching all teams")

        limit = page_size
        offset = (page - 1) * page_size
        try:
            teams, total = self._team_repo.get_all(limit, offset)
        except Exception as err:
            log.error("TeamService.get_all_teams: failed to fetch teams %s", err)
            raise CannotFetchTeams() from err

        log.info("TeamService.get_all_teams: fetched %d teams", len(teams))
        return teams, total

    def deactivate_team_and_reassign_prs(self, team_name: str) -> None:
        """Deactivate every member of the team and hand their reviews to
        random active users of other teams."""
        log.info("TeamService.deactivate_team_and_reassign_prs: deactivating team %s", team_name)

        try:
            with self._tx.transaction():
                self._deactivate_and_reassign(team_name)
        except Exception as err:
            log.error("TeamService.deactivate_team_and_reassign_prs: failed for team %s: %s", team_name, err)
            raise CannotDeactivateTeam() from err

        log.info("TeamService.deactivate_team_and_reassign_prs: completed for team %s", team_name)

    def _deactivate_and_reassign(self, team_name: str) -> None:
        users = self._team_repo.deactivate_team_members(team_name)
        if not users:
            log.info("TeamService.deactivate_team_and_reassign_prs: no active users found for team %s", team_name)
            return

        deactivated_ids = [user.id for user in users]
        for user_id in deactivated_ids:
            for pr in self._pr_repo.list_by_reviewer(user_id):
                # One replacement, never a deactivated user or the author.
                candidates = self._user_repo.get_random_active_users(1, *deactivated_ids, pr.author_id)
                if len(candidates) != 1:
                    raise CannotFetchNewReviewer()
                self._pr_repo.reassign_reviewer(pr.id, user_id, candidates[0].id)