import pytest
from databases import Database

from otakunexus.utils.database import (
    DatabaseWatchHistory, InMemoryWatchHistory, setup_database, teardown_database
)


@pytest.fixture
async def sqlite_db(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'history.db'}")
    await setup_database(db)
    yield db
    await teardown_database(db)


async def test_in_memory_history_keeps_last_episode():
    history = InMemoryWatchHistory()

    await history.record("s1", "one-piece", 3)
    await history.record("s1", "one-piece", 4)
    await history.record("s2", "frieren", 1)

    assert await history.get_all("s1") == {"one-piece": 4}
    assert await history.get("s2", "frieren") == 1
    assert await history.get("s2", "one-piece") is None


async def test_database_history_upserts(sqlite_db):
    history = DatabaseWatchHistory(sqlite_db)

    await history.record("s1", "one-piece", 61)
    await history.record("s1", "one-piece", 62)
    await history.record("s1", "frieren", 2)

    assert await history.get_all("s1") == {"one-piece": 62, "frieren": 2}
    assert await history.get_all("s2") == {}


async def test_setup_is_idempotent(sqlite_db):
    await DatabaseWatchHistory(sqlite_db).record("s1", "one-piece", 1)
    await setup_database(sqlite_db)

    version = await sqlite_db.fetch_val("SELECT version FROM db_version WHERE id = 1")
    assert version == "1.0"
    assert await DatabaseWatchHistory(sqlite_db).get("s1", "one-piece") == 1


async def test_in_memory_history_forgets_oldest_session():
    history = InMemoryWatchHistory(max_sessions=2)

    await history.record("s1", "one-piece", 1)
    await history.record("s2", "one-piece", 2)
    await history.record("s1", "frieren", 3)
    await history.record("s3", "bleach", 4)

    assert await history.get_all("s2") == {}
    assert await history.get_all("s1") == {"one-piece": 1, "frieren": 3}
    assert await history.get_all("s3") == {"bleach": 4}
