import pytest

from prassign.db import Database, run_migrations
from prassign.errors import CannotFetchTeams, TeamAlreadyExists, TeamNotFound
from prassign.team_repository import TeamRepository


@pytest.fixture
def db():
    database = Database(":memory:")
    run_migrations(database)
    yield database
    database.close()


@pytest.fixture
def repo(db):
    return TeamRepository(db)


def add_user(db, user_id, team, is_active):
    db.execute(
        "INSERT INTO app_user (id, name, team_id, is_active) VALUES (?, ?, ?, ?)",
        [user_id, user_id.upper(), team.id.hex, int(is_active)],
    )


def test_create_and_get_by_name_round_trip(repo):
    created = repo.create("backend")
    assert created.name == "backend"
    assert created.id is not None
    assert created.created_at is not None

    fetched = repo.get_by_name("backend")
    assert fetched.id == created.id
    assert fetched.created_at == created.created_at
    assert fetched.members == []


def test_create_duplicate_raises(repo):
    repo.create("backend")
    with pytest.raises(TeamAlreadyExists):
        repo.create("backend")


def test_get_by_name_missing(repo):
    with pytest.raises(TeamNotFound):
        repo.get_by_name("ghosts")


def test_get_all_pages_newest_first(db, repo):
    stamps = {
        "oldest": "2024-01-01T00:00:00.000Z",
        "middle": "2024-02-01T00:00:00.000Z",
        "newest": "2024-03-01T00:00:00.000Z",
    }
    for name, stamp in stamps.items():
        repo.create(name)
        db.execute("UPDATE team SET created_at = ? WHERE name = ?", [stamp, name])

    first, total = repo.get_all(2, 0)
    assert [team.name for team in first] == ["newest", "middle"]
    assert total == len(stamps)

    second, total_again = repo.get_all(2, 2)
    assert [team.name for team in second] == ["oldest"]
    assert total_again == total


def test_get_all_on_closed_database(db, repo):
    db.close()
    with pytest.raises(CannotFetchTeams):
        repo.get_all(10, 0)


def test_deactivate_team_members(db, repo):
    backend = repo.create("backend")
    ml = repo.create("ml")
    add_user(db, "u1", backend, True)
    add_user(db, "u2", backend, True)
    add_user(db, "u3", backend, False)
    add_user(db, "u4", ml, True)

    users = repo.deactivate_team_members("backend")
    assert sorted(user.id for user in users) == ["u1", "u2"]
    assert all(user.is_active is False for user in users)
    assert all(user.team.name == "backend" and user.team.id == backend.id for user in users)

    active = db.execute("SELECT id FROM app_user WHERE is_active = 1").rows
    assert [row["id"] for row in active] == ["u4"]


def test_deactivate_twice_returns_nobody(db, repo):
    backend = repo.create("backend")
    add_user(db, "u1", backend, True)
    repo.deactivate_team_members("backend")
    assert repo.deactivate_team_members("backend") == []
    assert repo.deactivate_team_members("unknown") == []