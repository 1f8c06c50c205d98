"""JSON shapes of the HTTP API and their conversion from domain objects."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping

from prassign.entity import PullRequest, Team, User


class ErrorCode(str, Enum):
    """Machine-readable codes carried in error responses."""

    TEAM_EXISTS = "TEAM_EXISTS"
    PR_EXISTS = "PR_EXISTS"
    PR_MERGED = "PR_MERGED"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    NOT_FOUND = "NOT_FOUND"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _format_time(value: datetime | None) -> str | None:
    """Format a time as RFC 3339 with trailing fractional zeros dropped."""
    if value is None:
        return None
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if offset is None or offset == timedelta(0):
        return text + "Z"
    seconds = int(offset.total_seconds())
    sign = "+" if seconds >= 0 else "-"
    seconds = abs(seconds)
    return f"{text}{sign}{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"


def error_body(code: ErrorCode | str | None, message: str) -> dict[str, Any]:
    """Build the body of an error response; a missing code is sent as ``""``."""
    return {"error": {"code": _text(code), "message": message}}


def user_to_json(user: User) -> dict[str, Any]:
    """Describe a user together with the name of their team."""
    return {
        "user_id": user.id,
        "username": user.name,
        "team_name": user.team.name,
        "is_active": user.is_active,
    }


def member_to_entity(member: Mapping[str, Any]) -> User:
    """Turn a team member object from a request into a user."""
    return User(
        id=str(member.get("user_id") or ""),
        name=str(member.get("username") or ""),
        is_active=bool(member.get("is_active", False)),
    )


def _member_to_json(user: User) -> dict[str, Any]:
    return {"user_id": user.id, "username": user.name, "is_active": user.is_active}


def team_to_json(team: Team) -> dict[str, Any]:
    """Describe a team and its members."""
    return {
        "team_name": team.name,
        "members": [_member_to_json(member) for member in team.members],
    }


def team_from_json(data: Mapping[str, Any]) -> Team:
    """Turn a team object from a request into a team with its members."""
    return Team(
        name=str(data.get("team_name") or ""),
        members=[member_to_entity(member) for member in data.get("members") or []],
    )


def pull_request_to_json(pr: PullRequest) -> dict[str, Any]:
    """Describe a pull request with its reviewers and times."""
    return {
        "pull_request_id": pr.id,
        "pull_request_name": pr.title,
        "author_id": pr.author_id,
        "status": _text(pr.status.name),
        "assigned_reviewers": list(pr.reviewers),
        "createdAt": _format_time(pr.created_at),
        "mergedAt": _format_time(pr.merged_at),
    }


def pull_request_short_to_json(pr: PullRequest) -> dict[str, Any]:
    """Describe a pull request without reviewers or times."""
    return {
        "pull_request_id": pr.id,
        "pull_request_name": pr.title,
        "author_id": pr.author_id,
        "status": _text(pr.status.name),
    }