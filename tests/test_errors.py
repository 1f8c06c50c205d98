import pytest

from prassign import errors


@pytest.mark.parametrize(
    "cls, text",
    [
        (errors.UserAlreadyExists, "user already exists"),
        (errors.UserNotFound, "user not found"),
        (errors.TeamAlreadyExists, "team already exists"),
        (errors.TeamNotFound, "team not found"),
        (errors.CannotFetchTeams, "cannot fetch teams"),
        (errors.PRNotFound, "pull request not found"),
        (errors.PRAlreadyExists, "pull request already exists"),
        (errors.ReviewerAlreadyAssigned, "reviewer already assigned to this pull request"),
        (errors.ReviewerNotFound, "reviewer not found"),
        (errors.AuthorNotFound, "author not found"),
        (errors.CannotFetchPRs, "cannot fetch PRs"),
        (errors.StatusNotFound, "status not found"),
    ],
)
def test_default_messages(cls, text):
    err = cls()
    assert str(err) == text
    assert isinstance(err, errors.RepositoryError)


def test_custom_message_overrides_default():
    err = errors.UserNotFound("no user u1")
    assert str(err) == "no user u1"


def test_errors_are_distinct():
    err = errors.TeamNotFound()
    assert str(err) == "team not found"
    assert isinstance(err, errors.UserNotFound) is False
    assert issubclass(errors.TeamNotFound, errors.UserNotFound) is False