from uuid import UUID, uuid4

import pytest

from prassign.db import Database, DatabaseError, run_migrations
from prassign.errors import UserAlreadyExists, UserNotFound
from prassign.user_repository import UserRepository


@pytest.fixture
def db():
    database = Database(":memory:")
    run_migrations(database)
    yield database
    database.close()


@pytest.fixture
def repo(db):
    return UserRepository(db)


def make_team(db, name):
    db.execute("INSERT INTO team (name) VALUES (?)", [name])
    return UUID(db.execute("SELECT id FROM team WHERE name = ?", [name]).first()["id"])


def test_create_and_get_by_id_round_trip(db, repo):
    team_id = make_team(db, "backend")
    created = repo.create("u1", "Alice", team_id, True)
    assert created.id == "u1"
    assert created.name == "Alice"
    assert created.is_active is True
    assert created.team.id == team_id
    assert created.created_at is not None

    fetched = repo.get_by_id("u1")
    assert fetched.name == "Alice"
    assert fetched.team.id == team_id
    assert fetched.team.name == "backend"
    assert fetched.created_at == created.created_at


def test_create_duplicate_raises(db, repo):
    team_id = make_team(db, "backend")
    repo.create("u1", "Alice", team_id, True)
    with pytest.raises(UserAlreadyExists):
        repo.create("u1", "Bob", team_id, False)


def test_create_with_unknown_team_raises(repo):
    with pytest.raises(DatabaseError):
        repo.create("u1", "Alice", uuid4(), True)


def test_get_by_id_missing(repo):
    with pytest.raises(UserNotFound):
        repo.get_by_id("nobody")


def test_get_by_team_id_returns_only_members(db, repo):
    backend = make_team(db, "backend")
    ml = make_team(db, "ml")
    repo.create("u1", "Alice", backend, True)
    repo.create("u2", "Bob", backend, False)
    repo.create("u3", "Carol", ml, True)

    members = repo.get_by_team_id(backend)
    assert sorted(user.id for user in members) == ["u1", "u2"]
    assert all(user.team.name == "backend" for user in members)


def test_set_active_status(db, repo):
    team_id = make_team(db, "backend")
    repo.create("u1", "Alice", team_id, True)
    repo.set_active_status("u1", False)
    assert repo.get_by_id("u1").is_active is False
    repo.set_active_status("u1", True)
    assert repo.get_by_id("u1").is_active is True


def test_set_active_status_missing(repo):
    with pytest.raises(UserNotFound):
        repo.set_active_status("nobody", True)


def test_set_team_id(db, repo):
    backend = make_team(db, "backend")
    ml = make_team(db, "ml")
    repo.create("u1", "Alice", backend, True)
    repo.set_team_id("u1", ml)
    moved = repo.get_by_id("u1")
    assert moved.team.id == ml
    assert moved.team.name == "ml"
    with pytest.raises(UserNotFound):
        repo.set_team_id("nobody", ml)


@pytest.fixture
def populated(db, repo):
    backend = make_team(db, "backend")
    ml = make_team(db, "ml")
    repo.create("a", "A", backend, True)
    repo.create("b", "B", backend, True)
    repo.create("c", "C", backend, False)
    repo.create("d", "D", backend, True)
    repo.create("e", "E", ml, True)
    return backend


def test_random_teammates_skip_excluded_and_inactive(repo, populated):
    found = repo.get_random_active_teammates(populated, 5, "a")
    assert {user.id for user in found} == {"b", "d"}
    assert all(user.is_active for user in found)


def test_random_teammates_respects_limit(repo, populated):
    found = repo.get_random_active_teammates(populated, 1)
    assert len(found) == 1
    assert found[0].id in {"a", "b", "d"}


def test_random_active_users_across_teams(repo, populated):
    found = repo.get_random_active_users(10, "a", "b")
    assert {user.id for user in found} == {"d", "e"}

    limited = repo.get_random_active_users(2)
    assert len(limited) == 2
    assert {user.id for user in limited} <= {"a", "b", "d", "e"}
    assert all(user.team.name for user in limited)