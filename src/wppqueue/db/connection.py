"""Database connection, transactions and migration management."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import aiosqlite

from wppqueue.domain.errors import CollaboratorFailure

logger = logging.getLogger(__name__)

# Global database instance, owned by the API lifespan and the CLI
_database: "Database | None" = None

# Set for the task that currently holds the write lock
_in_transaction: ContextVar[bool] = ContextVar("wppqueue_in_transaction", default=False)


class Database:
    """SQLite document store with async support.

    Writes go through `transaction()`, which serialises them on the shared
    connection and commits or rolls back as a unit. Reads made outside a
    transaction wait for the running one to finish, so they never observe
    uncommitted writes on the shared connection.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open database connection and run migrations."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.execute("PRAGMA journal_mode = WAL")
        await self._connection.execute("PRAGMA synchronous = NORMAL")
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._connection.execute("PRAGMA busy_timeout = 5000")

        await self._run_migrations()
        logger.info(f"Connected to database: {self.db_path}")

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    @property
    def connection(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if not self._connection:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def execute(
        self, query: str, params: tuple[Any, ...] | dict[str, Any] | None = None
    ) -> aiosqlite.Cursor:
        """Execute a query and return cursor."""
        try:
            if params is None:
                return await self.connection.execute(query)
            return await self.connection.execute(query, params)
        except aiosqlite.Error as e:
            logger.error(f"Query failed: {type(e).__name__}: {e}")
            raise CollaboratorFailure() from e

    async def fetchone(
        self, query: str, params: tuple[Any, ...] | dict[str, Any] | None = None
    ) -> aiosqlite.Row | None:
        """Execute query and fetch one row."""
        async with self._read_guard():
            cursor = await self.execute(query, params)
            return await cursor.fetchone()

    async def fetchall(
        self, query: str, params: tuple[Any, ...] | dict[str, Any] | None = None
    ) -> list[aiosqlite.Row]:
        """Execute query and fetch all rows."""
        async with self._read_guard():
            cursor = await self.execute(query, params)
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def _read_guard(self) -> AsyncIterator[None]:
        if _in_transaction.get():
            yield
            return
        async with self._write_lock:
            yield

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Database"]:
        """Run the enclosed reads and writes as one atomic unit.

        Any exception raised inside the block rolls back every write made
        in it and is re-raised to the caller.
        """
        async with self._write_lock:
            token = _in_transaction.set(True)
            try:
                await self.execute("BEGIN IMMEDIATE")
                try:
                    yield self
                except BaseException:
                    await self.connection.rollback()
                    logger.debug("Transaction rolled back")
                    raise
                try:
                    await self.connection.commit()
                except aiosqlite.Error as e:
                    logger.error(f"Commit failed: {type(e).__name__}: {e}")
                    await self.connection.rollback()
                    raise CollaboratorFailure() from e
            finally:
                _in_transaction.reset(token)

    async def _run_migrations(self) -> None:
        """Run pending SQL migrations."""
        migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

        if not migrations_dir.exists():
            logger.warning(f"Migrations directory not found: {migrations_dir}")
            return

        for migration_file in sorted(migrations_dir.glob("*.sql")):
            # "001_initial.sql" -> 1
            version_str = migration_file.stem.split("_")[0]
            try:
                version = int(version_str)
            except ValueError:
                logger.warning(f"Skipping invalid migration filename: {migration_file}")
                continue

            try:
                cursor = await self.connection.execute(
                    "SELECT version FROM _migrations WHERE version = ?", (version,)
                )
                if await cursor.fetchone():
                    continue
            except aiosqlite.OperationalError:
                # _migrations table doesn't exist yet, first migration will create it
                pass

            logger.info(f"Applying migration: {migration_file.name}")
            try:
                await self.connection.executescript(migration_file.read_text())
                await self.connection.commit()
                logger.info(f"Migration applied: {migration_file.name}")
            except Exception as e:
                logger.error(
                    f"Failed to apply migration {migration_file.name}: {type(e).__name__}: {e}"
                )
                raise


async def get_database(db_path: str | Path | None = None) -> Database:
    """Get or create the global database instance."""
    global _database

    if _database is None:
        if db_path is None:
            from wppqueue.config import get_settings

            db_path = get_settings().db_path
        _database = Database(db_path)
        await _database.connect()

    return _database


async def close_database() -> None:
    """Close the global database instance."""
    global _database

    if _database:
        await _database.disconnect()
        _database = None
