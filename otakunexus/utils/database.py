import os
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional

from databases import Database

from otakunexus.utils.logger import logger
from otakunexus.config.settings import database, settings

DATABASE_VERSION = "1.0"


async def setup_database(db: Database = database):
    """Initialise la base de données et crée les tables."""
    if settings.DATABASE_TYPE == "sqlite" and db is database:
        directory = os.path.dirname(settings.DATABASE_PATH)
        if directory:
            os.makedirs(directory, exist_ok=True)

    if not db.is_connected:
        await db.connect()

    await db.execute("CREATE TABLE IF NOT EXISTS db_version (id INTEGER PRIMARY KEY CHECK (id = 1), version TEXT)")
    current_version = await db.fetch_val("SELECT version FROM db_version WHERE id = 1")
    if current_version != DATABASE_VERSION:
        logger.log("DATABASE", f"Migration v{current_version} → v{DATABASE_VERSION}")
        await db.execute("DROP TABLE IF EXISTS watch_history")
        if settings.DATABASE_TYPE == "sqlite":
            await db.execute("INSERT OR REPLACE INTO db_version VALUES (1, :version)", {"version": DATABASE_VERSION})
        else:
            await db.execute("INSERT INTO db_version VALUES (1, :version) ON CONFLICT (id) DO UPDATE SET version = :version", {"version": DATABASE_VERSION})

    await db.execute(
        "CREATE TABLE IF NOT EXISTS watch_history ("
        "session_id TEXT NOT NULL, anime_id TEXT NOT NULL, episode_number INTEGER NOT NULL, "
        "updated_at REAL NOT NULL, PRIMARY KEY (session_id, anime_id))"
    )
    await db.execute("CREATE INDEX IF NOT EXISTS idx_watch_history_session ON watch_history(session_id)")

    if settings.DATABASE_TYPE == "sqlite":
        await db.execute("PRAGMA busy_timeout=30000")
        await db.execute("PRAGMA journal_mode=WAL")

    logger.log("DATABASE", "Base de données prête")


async def teardown_database(db: Database = database):
    """Ferme la connexion à la base de données."""
    try:
        await db.disconnect()
    except Exception as e:
        logger.error(f"Erreur fermeture base de données: {e}")


class WatchHistoryRepository(ABC):
    """Dernier épisode regardé par anime, par session utilisateur."""

    @abstractmethod
    async def get_all(self, session_id: str) -> Dict[str, int]:
        ...

    @abstractmethod
    async def record(self, session_id: str, anime_id: str, episode_number: int) -> None:
        ...

    async def get(self, session_id: str, anime_id: str) -> Optional[int]:
        return (await self.get_all(session_id)).get(anime_id)


class InMemoryWatchHistory(WatchHistoryRepository):
    """Historique en mémoire du processus, repli quand la base est indisponible.

    Perdu au redémarrage. Au-delà de `max_sessions`, la session la moins
    récemment mise à jour est oubliée.
    """

    def __init__(self, max_sessions: int = 10000):
        self.max_sessions = max_sessions
        self._entries: Dict[str, Dict[str, int]] = {}

    async def get_all(self, session_id: str) -> Dict[str, int]:
        return dict(self._entries.get(session_id, {}))

    async def record(self, session_id: str, anime_id: str, episode_number: int) -> None:
        entries = self._entries.pop(session_id, {})
        entries[anime_id] = episode_number
        self._entries[session_id] = entries
        while len(self._entries) > self.max_sessions:
            self._entries.pop(next(iter(self._entries)))


class DatabaseWatchHistory(WatchHistoryRepository):
    """Historique persistant (SQLite ou PostgreSQL via `databases`)."""

    def __init__(self, db: Database = database):
        self.db = db

    async def get_all(self, session_id: str) -> Dict[str, int]:
        rows = await self.db.fetch_all(
            "SELECT anime_id, episode_number FROM watch_history WHERE session_id = :session_id",
            {"session_id": session_id}
        )
        return {row["anime_id"]: row["episode_number"] for row in rows}

    async def record(self, session_id: str, anime_id: str, episode_number: int) -> None:
        if settings.DATABASE_TYPE == "sqlite":
            query = ("INSERT OR REPLACE INTO watch_history (session_id, anime_id, episode_number, updated_at) "
                     "VALUES (:session_id, :anime_id, :episode_number, :updated_at)")
        else:
            query = ("INSERT INTO watch_history (session_id, anime_id, episode_number, updated_at) "
                     "VALUES (:session_id, :anime_id, :episode_number, :updated_at) "
                     "ON CONFLICT (session_id, anime_id) DO UPDATE SET episode_number = :episode_number, updated_at = :updated_at")
        await self.db.execute(query, {
            "session_id": session_id,
            "anime_id": anime_id,
            "episode_number": episode_number,
            "updated_at": time.time(),
        })
        logger.log("DATABASE", f"Historique {session_id}: {anime_id} → épisode {episode_number}")
