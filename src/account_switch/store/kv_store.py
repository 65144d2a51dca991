"""Read-mutate-write access to the host's SQLite ``ItemTable``.

The database file is owned by the host application. Every operation loads
the complete file into an in-memory SQLite connection, works on it, and
(for mutations) serializes the whole image back over the original file.
There is no locking against other writers; the last writer wins.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from account_switch.errors import InvalidValueError, SerializationError, StoreIOError
from account_switch.store.codec import StoredValue, decode_value, encode_value

logger = logging.getLogger(__name__)

TABLE_NAME = "ItemTable"

_CREATE_TABLE = (
    f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} "
    "(key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)"
)


class KeyValueStore:
    """Async facade over a single SQLite key-value file."""

    def __init__(self, db_path: str | Path) -> None:
        self._path = Path(db_path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    async def read(self, key: str) -> StoredValue | None:
        """Return the decoded value for ``key``, or ``None`` if absent or unreadable."""
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, value: Any) -> None:
        """Upsert ``key`` and rewrite the file.

        Raises:
            InvalidValueError: ``value`` is ``None``.
            SerializationError: ``value`` cannot be stored faithfully.
            StoreIOError: the image could not be loaded or written back.
        """
        if value is None:
            raise InvalidValueError(key)
        encoded = encode_value(value)
        await asyncio.to_thread(self._write_sync, key, encoded)

    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether the rewrite succeeded."""
        return await asyncio.to_thread(self._delete_sync, key)

    async def delete_by_pattern(self, pattern: str) -> int:
        """Remove every key matching a SQL ``LIKE`` pattern and return the count."""
        return await asyncio.to_thread(self._delete_by_pattern_sync, pattern)

    async def keys(self, pattern: str = "%") -> list[str]:
        return await asyncio.to_thread(self._keys_sync, pattern)

    async def backup(self) -> str | None:
        """Copy the database file next to itself with an epoch-millis suffix."""
        return await asyncio.to_thread(self._backup_sync)

    @contextmanager
    def _open_image(self, *, create_table: bool = False) -> Iterator[sqlite3.Connection]:
        try:
            data = self._path.read_bytes()
        except OSError as exc:
            raise StoreIOError(
                f"Failed to read database {self._path}: {exc}", str(self._path)
            ) from exc

        conn = sqlite3.connect(":memory:")
        try:
            try:
                # A zero-length file is a valid empty database.
                if data:
                    conn.deserialize(data)
                if create_table:
                    conn.execute(_CREATE_TABLE)
            except sqlite3.Error as exc:
                raise StoreIOError(
                    f"Failed to load database {self._path}: {exc}", str(self._path)
                ) from exc
            yield conn
        finally:
            conn.close()

    def _persist(self, conn: sqlite3.Connection) -> None:
        try:
            conn.commit()
            image = conn.serialize()
            self._path.write_bytes(image)
        except (OSError, sqlite3.Error) as exc:
            raise StoreIOError(
                f"Failed to write database {self._path}: {exc}", str(self._path)
            ) from exc

    def _read_sync(self, key: str) -> StoredValue | None:
        try:
            with self._open_image() as conn:
                row = conn.execute(
                    f"SELECT value FROM {TABLE_NAME} WHERE key = ?", (key,)
                ).fetchone()
        except (StoreIOError, sqlite3.Error) as exc:
            logger.error("Read of %s failed: %s", key, exc)
            return None
        if row is None:
            return None
        try:
            return decode_value(row[0])
        except SerializationError as exc:
            logger.error("Decode of %s failed: %s", key, exc)
            return None

    def _write_sync(self, key: str, encoded: str) -> None:
        with self._open_image(create_table=True) as conn:
            try:
                conn.execute(
                    f"INSERT OR REPLACE INTO {TABLE_NAME} (key, value) VALUES (?, ?)",
                    (key, encoded),
                )
            except sqlite3.Error as exc:
                raise StoreIOError(f"Failed to write {key}: {exc}", str(self._path)) from exc
            self._persist(conn)
        logger.info("Wrote %s", key)

    def _delete_sync(self, key: str) -> bool:
        try:
            with self._open_image() as conn:
                conn.execute(f"DELETE FROM {TABLE_NAME} WHERE key = ?", (key,))
                self._persist(conn)
        except (StoreIOError, sqlite3.Error) as exc:
            logger.error("Delete of %s failed: %s", key, exc)
            return False
        logger.info("Deleted %s", key)
        return True

    def _delete_by_pattern_sync(self, pattern: str) -> int:
        try:
            with self._open_image() as conn:
                rows = conn.execute(
                    f"SELECT key FROM {TABLE_NAME} WHERE key LIKE ?", (pattern,)
                ).fetchall()
                deleted = 0
                for (key,) in rows:
                    conn.execute(f"DELETE FROM {TABLE_NAME} WHERE key = ?", (key,))
                    deleted += 1
                self._persist(conn)
        except (StoreIOError, sqlite3.Error) as exc:
            logger.error("Delete by pattern %s failed: %s", pattern, exc)
            return 0
        logger.info("Deleted %d rows matching %s", deleted, pattern)
        return deleted

    def _keys_sync(self, pattern: str) -> list[str]:
        try:
            with self._open_image() as conn:
                rows = conn.execute(
                    f"SELECT key FROM {TABLE_NAME} WHERE key LIKE ? ORDER BY key", (pattern,)
                ).fetchall()
        except (StoreIOError, sqlite3.Error) as exc:
            logger.error("Listing keys matching %s failed: %s", pattern, exc)
            return []
        return [row[0] for row in rows]

    def _backup_sync(self) -> str | None:
        backup_path = f"{self._path}.backup.{int(time.time() * 1000)}"
        try:
            shutil.copyfile(self._path, backup_path)
        except OSError as exc:
            logger.error("Backup of %s failed: %s", self._path, exc)
            return None
        logger.info("Database backed up to %s", backup_path)
        return backup_path
