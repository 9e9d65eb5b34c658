import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from aiosqlite import Connection, Error as SqliteError, connect as sqlite_connect
from opentelemetry.instrumentation.sqlite3 import SQLite3Instrumentor

from memo.helpers.config_models.store import SqliteModel
from memo.helpers.logging import logger
from memo.models.readiness import ReadinessEnum
from memo.persistence.istore import IStore

# Instrument sqlite
SQLite3Instrumentor().instrument()


class SqliteStore(IStore):
    """
    Store backed by a SQLite file.

    The file can be opened by several processes at once, which makes it suitable to share the collection with the widget renderer.
    """

    _config: SqliteModel
    _db_path: str
    _init_done: bool

    def __init__(self, config: SqliteModel):
        logger.info("Using SQLite store at %s with table %s", config.path, config.table)
        self._config = config
        self._db_path = config.full_path()
        self._init_done = False

        # Create folder if does not exist
        os.makedirs(name=os.path.dirname(self._db_path), exist_ok=True)

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the SQLite store.

        This checks if the database is reachable and can be queried.
        """
        try:
            async with self._use_db() as db:
                await db.execute("SELECT 1")
            return ReadinessEnum.OK
        except SqliteError:
            logger.exception("Error requesting SQLite")
        return ReadinessEnum.FAIL

    async def get(self, key: str) -> bytes | None:
        """
        Get a value from the store.

        If the key does not exist or the database cannot be read, return `None`.
        """
        try:
            async with self._use_db() as db:
                cursor = await db.execute(
                    f"SELECT value FROM {self._config.table} WHERE key = ?",
                    (key,),
                )
                row = await cursor.fetchone()
        except SqliteError:
            logger.exception("Error getting value")
            return None
        if not row:
            return None
        return bytes(row[0])

    async def set(
        self,
        key: str,
        value: str | bytes,
    ) -> bool:
        data = value.encode() if isinstance(value, str) else value
        try:
            async with self._use_db() as db:
                await db.execute(
                    f"INSERT OR REPLACE INTO {self._config.table} VALUES (?, ?)",
                    (
                        key,  # key
                        data,  # value
                    ),
                )
                await db.commit()
        except SqliteError:
            logger.exception("Error setting value")
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            async with self._use_db() as db:
                await db.execute(
                    f"DELETE FROM {self._config.table} WHERE key = ?",
                    (key,),
                )
                await db.commit()
        except SqliteError:
            logger.exception("Error deleting value")
            return False
        return True

    async def _init_db(self, db: Connection) -> None:
        """
        Initialize the database.

        WAL journal lets the widget renderer read while the application writes.

        See: https://sqlite.org/wal.html
        """
        logger.debug("Init SQLite table %s", self._config.table)
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute(
            f"CREATE TABLE IF NOT EXISTS {self._config.table} (key TEXT PRIMARY KEY, value BLOB NOT NULL)"
        )
        await db.commit()

    @asynccontextmanager
    async def _use_db(self) -> AsyncGenerator[Connection]:
        """
        Generate the SQLite client and close it after use.
        """
        async with sqlite_connect(
            database=self._db_path,
            timeout=10,  # Wait for the other process to release its lock
        ) as client:
            if not self._init_done:
                await self._init_db(client)
                self._init_done = True
            yield client
