from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from prassign import errors as repo_errors
from prassign.entity import PullRequest, User
from prassign.user_service import (
    CannotGetUserReviews,
    CannotSetUserStatus,
    UserNotFound,
    UserService,
)

USER_ID = "user123"


class FakeTransactor:
    def __init__(self):
        self.entered = 0
        self.rolled_back = 0

    @contextmanager
    def transaction(self):
        self.entered += 1
        try:
            yield
        except BaseException:
            self.rolled_back += 1
            raise


def make_service():
    user_repo = Mock()
    pr_repo = Mock()
    tx = FakeTransactor()
    return UserService(user_repo, pr_repo, tx), user_repo, pr_repo, tx


def test_set_user_status_success():
    service, user_repo, _, _ = make_service()
    expected = User(id=USER_ID, name="John", is_active=False)
    user_repo.get_by_id.return_value = expected

    out = service.set_user_status(USER_ID, False)

    assert out == expected
    user_repo.set_active_status.assert_called_once_with(USER_ID, False)
    user_repo.get_by_id.assert_called_once_with(USER_ID)


def test_set_user_status_not_found_on_update():
    service, user_repo, _, _ = make_service()
    user_repo.set_active_status.side_effect = repo_errors.UserNotFound()

    with pytest.raises(UserNotFound):
        service.set_user_status(USER_ID, False)
    user_repo.get_by_id.assert_not_called()


def test_set_user_status_internal_error_on_update():
    service, user_repo, _, _ = make_service()
    user_repo.set_active_status.side_effect = RuntimeError("arbitrary error")

    with pytest.raises(CannotSetUserStatus):
        service.set_user_status(USER_ID, True)


def test_set_user_status_not_found_on_get():
    service, user_repo, _, _ = make_service()
    user_repo.get_by_id.side_effect = repo_errors.UserNotFound()

    with pytest.raises(UserNotFound):
        service.set_user_status(USER_ID, True)
    user_repo.set_active_status.assert_called_once_with(USER_ID, True)


def test_set_user_status_internal_error_on_get():
    service, user_repo, _, _ = make_service()
    user_repo.get_by_id.side_effect = RuntimeError("arbitrary error")

    with pytest.raises(CannotSetUserStatus):
        service.set_user_status(USER_ID, True)


def _mock_prs():
    reviewers = ["", "", "u1", "u2"]
    return [
        PullRequest(id="1", author_id="a1", reviewers=list(reviewers)),
        PullRequest(id="2", author_id="a2", reviewers=list(reviewers)),
    ]


def test_get_user_reviews_success():
    service, user_repo, pr_repo, tx = make_service()
    user_repo.get_by_id.return_value = User(id="123", name="Test")
    pr_repo.list_by_reviewer.return_value = _mock_prs()

    out = service.get_user_reviews("123")

    assert out == _mock_prs()
    pr_repo.list_by_reviewer.assert_called_once_with("123")
    assert tx.entered == 1
    assert tx.rolled_back == 0


def test_get_user_reviews_user_not_found():
    service, user_repo, pr_repo, tx = make_service()
    user_repo.get_by_id.side_effect = repo_errors.UserNotFound()

    with pytest.raises(UserNotFound):
        service.get_user_reviews("123")
    pr_repo.list_by_reviewer.assert_not_called()
    assert tx.rolled_back == 1


def test_get_user_reviews_cannot_fetch():
    service, user_repo, pr_repo, tx = make_service()
    user_repo.get_by_id.return_value = User(id="123", name="Test")
    pr_repo.list_by_reviewer.side_effect = RuntimeError("unexpected failure")

    with pytest.raises(CannotGetUserReviews):
        service.get_user_reviews("123")
    assert tx.rolled_back == 1