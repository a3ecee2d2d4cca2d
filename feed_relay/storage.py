"""
SQLite storage for feed entries.

Persists every entry seen in the feed, keyed by guid, so that new entries
can be detected against a publication-time watermark across restarts.
"""

import enum
import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from feed_relay.entry import FeedEntry

logger = logging.getLogger(__name__)


class StoreErrorKind(enum.Enum):
    """Stage at which a storage operation failed."""

    CONNECT = "connect"
    SCHEMA = "schema"
    READ = "read"
    WRITE = "write"


class StoreError(Exception):
    """Raised when the database cannot be opened, set up, read or written."""

    def __init__(self, kind: StoreErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class InsertResult(enum.Enum):
    """Outcome of inserting an entry."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"


def _to_db_time(value: datetime | None) -> str | None:
    """Normalize a timestamp to UTC ISO-8601 so text order is time order."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class Storage:
    """
    Async SQLite storage for feed entries.

    Every distinct guid is recorded once and never updated or deleted.
    """

    def __init__(self, database_path: str | Path):
        """
        Initialize storage with database path.

        Parameters
        ----------
        database_path : str | Path
            Path to the SQLite database file.
        """
        self.database_path = Path(database_path)
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """
        Initialize the database connection and create tables.

        Creates the database file and parent directories if they don't exist.

        Raises
        ------
        StoreError
            With kind CONNECT if the database cannot be opened, or SCHEMA
            if the tables cannot be created.
        """
        logger.info("Initializing database at %s", self.database_path)

        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self.database_path)
        except (OSError, aiosqlite.Error) as e:
            raise StoreError(
                StoreErrorKind.CONNECT,
                f"Cannot open database {self.database_path}: {e}",
            ) from e

        try:
            await self._create_tables()
        except aiosqlite.Error as e:
            raise StoreError(StoreErrorKind.SCHEMA, f"Cannot create tables: {e}") from e

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        if self._connection is None:
            raise RuntimeError("Database not initialized")

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS feed (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                data TEXT,
                pub_date TIMESTAMP,
                guid TEXT NOT NULL UNIQUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_feed_pub_date
            ON feed (pub_date)
        """)

        await self._connection.commit()
        logger.debug("Database tables created/verified")

    async def latest(self) -> tuple[str, datetime] | None:
        """
        Get the most recently published entry recorded so far.

        Ties on publication time go to the most recently inserted row.
        Entries stored without a publication time are ignored.

        Returns
        -------
        tuple[str, datetime] | None
            The ``(guid, published_at)`` pair, or None if nothing is stored.

        Raises
        ------
        StoreError
            With kind READ if the query fails.
        """
        if self._connection is None:
            raise RuntimeError("Database not initialized")

        try:
            cursor = await self._connection.execute(
                """
                SELECT guid, pub_date FROM feed
                WHERE pub_date IS NOT NULL
                ORDER BY pub_date DESC, id DESC
                LIMIT 1
                """
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(StoreErrorKind.READ, f"Cannot read watermark: {e}") from e

        if row is None:
            return None
        return row[0], datetime.fromisoformat(row[1])

    async def insert(self, entry: FeedEntry) -> InsertResult:
        """
        Record a new entry.

        Parameters
        ----------
        entry : FeedEntry
            The entry to persist.

        Returns
        -------
        InsertResult
            DUPLICATE if an entry with the same guid was already recorded.

        Raises
        ------
        StoreError
            With kind WRITE on any other database failure.
        """
        if self._connection is None:
            raise RuntimeError("Database not initialized")

        try:
            await self._connection.execute(
                "INSERT INTO feed (guid, pub_date, data) VALUES (?, ?, ?)",
                (entry.guid, _to_db_time(entry.published_at), entry.to_json()),
            )
            await self._connection.commit()
        except aiosqlite.IntegrityError:
            await self._connection.rollback()
            logger.debug("Entry already recorded: %s", entry.guid[:80])
            return InsertResult.DUPLICATE
        except aiosqlite.Error as e:
            raise StoreError(
                StoreErrorKind.WRITE,
                f"Failed to insert {entry.guid[:80]}: {e}",
            ) from e

        logger.debug("Inserted %s", entry.guid[:80])
        return InsertResult.INSERTED

    async def is_seen(self, guid: str) -> bool:
        """
        Check if an entry has already been recorded.

        Parameters
        ----------
        guid : str
            Unique identifier of the entry.

        Returns
        -------
        bool
            True if the entry has been recorded before.
        """
        if self._connection is None:
            raise RuntimeError("Database not initialized")

        cursor = await self._connection.execute(
            "SELECT 1 FROM feed WHERE guid = ?",
            (guid,),
        )
        result = await cursor.fetchone()
        return result is not None

    async def get_entry_count(self) -> int:
        """
        Get the number of recorded entries.

        Returns
        -------
        int
            Number of rows in the feed table.
        """
        if self._connection is None:
            raise RuntimeError("Database not initialized")

        cursor = await self._connection.execute("SELECT COUNT(*) FROM feed")
        result = await cursor.fetchone()
        return result[0] if result else 0

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    async def __aenter__(self) -> "Storage":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
