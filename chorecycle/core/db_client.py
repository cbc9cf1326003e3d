"""SQLite database client wrapper: cached aiosqlite connections and query helpers."""

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import aiosqlite

from chorecycle.core.config import settings
from chorecycle.core.errors import DatabaseError, DuplicateInstanceError


logger = logging.getLogger(__name__)

SqlParams = Sequence[Any]


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


def _cache_key(db_path: str | None) -> tuple[int, int, str]:
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    return (thread_id, loop_id, str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    # Create new connection with async lock to prevent races
    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path = get_db_path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": cache_key[1]},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    if cache_key not in _db_connections:
        return

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        if conn is None:
            return
        try:
            await conn.close()
            logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
        except sqlite3.Error as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from chorecycle.core import schema

    await schema.init_db(db_path=db_path)


def _is_unique_violation(error: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(error)


async def fetch_all(query: str, params: SqlParams = (), *, db_path: str | None = None) -> list[dict[str, Any]]:
    """Run a SELECT and return every row as a dict."""
    try:
        conn = await get_connection(db_path=db_path)
        async with conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]
    except sqlite3.Error as e:
        logger.error("fetch_all_failed", extra={"error": str(e)})
        raise DatabaseError(f"Query failed: {e}") from e


async def fetch_one(query: str, params: SqlParams = (), *, db_path: str | None = None) -> dict[str, Any] | None:
    """Run a SELECT and return the first row as a dict, or None."""
    try:
        conn = await get_connection(db_path=db_path)
        async with conn.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return dict(row) if row is not None else None
    except sqlite3.Error as e:
        logger.error("fetch_one_failed", extra={"error": str(e)})
        raise DatabaseError(f"Query failed: {e}") from e


async def execute(query: str, params: SqlParams = (), *, db_path: str | None = None) -> tuple[int, int | None]:
    """Run a single write statement in its own transaction.

    Returns:
        Tuple of (rowcount, lastrowid)

    Raises:
        DuplicateInstanceError: If a UNIQUE constraint is violated
        DatabaseError: For any other SQLite failure
    """
    conn = await get_connection(db_path=db_path)
    try:
        cursor = await conn.execute(query, params)
        await conn.commit()
        return cursor.rowcount, cursor.lastrowid
    except sqlite3.IntegrityError as e:
        await conn.rollback()
        if _is_unique_violation(e):
            raise DuplicateInstanceError(str(e)) from e
        logger.error("execute_failed", extra={"error": str(e)})
        raise DatabaseError(f"Write failed: {e}") from e
    except sqlite3.Error as e:
        await conn.rollback()
        logger.error("execute_failed", extra={"error": str(e)})
        raise DatabaseError(f"Write failed: {e}") from e


async def execute_many(query: str, rows: Iterable[SqlParams], *, db_path: str | None = None) -> int:
    """Run one write statement for every parameter row, all in a single transaction.

    Either every row lands or none does.

    Returns:
        Number of rows written

    Raises:
        DuplicateInstanceError: If a UNIQUE constraint is violated (nothing is written)
        DatabaseError: For any other SQLite failure
    """
    conn = await get_connection(db_path=db_path)
    try:
        cursor = await conn.executemany(query, list(rows))
        await conn.commit()
        return cursor.rowcount
    except sqlite3.IntegrityError as e:
        await conn.rollback()
        if _is_unique_violation(e):
            raise DuplicateInstanceError(str(e)) from e
        logger.error("execute_many_failed", extra={"error": str(e)})
        raise DatabaseError(f"Batch write failed: {e}") from e
    except sqlite3.Error as e:
        await conn.rollback()
        logger.error("execute_many_failed", extra={"error": str(e)})
        raise DatabaseError(f"Batch write failed: {e}") from e
