"""Domain objects: teams, users, pull requests and their reviewers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

MIN_AMOUNT_OF_REVIEWERS = 2


class PRStatusName(str, Enum):
    """Names of the states a pull request can be in."""

    OPEN = "OPEN"
    MERGED = "MERGED"


@dataclass
class Status:
    """A pull request status row."""

    id: int = 0
    name: str = ""


@dataclass
class PullRequest:
    """A pull request together with the IDs of its reviewers."""

    id: str = ""
    title: str = ""
    author_id: str = ""
    status: Status = field(default_factory=Status)
    need_more_reviewers: bool = False
    created_at: datetime | None = None
    merged_at: datetime | None = None
    reviewers: list[str] = field(default_factory=list)


@dataclass
class PRReviewer:
    """The assignment of one reviewer to one pull request."""

    id: str = ""
    pr_id: str = ""
    reviewer_id: str = ""
    assigned_at: datetime | None = None


@dataclass
class Team:
    """A team and, when loaded, its members."""

    id: UUID | None = None
    name: str = ""
    created_at: datetime | None = None
    members: list[User] = field(default_factory=list)


@dataclass
class User:
    """A user who belongs to a team and may review pull requests."""

    id: str = ""
    name: str = ""
    is_active: bool = False
    team: Team = field(default_factory=Team)
    created_at: datetime | None = None