#!/usr/bin/env python3
"""asyncpg helpers for the local entity cache.

Example:
    pool = await create_pool(os.environ["DATABASE_URL"])
    async with database_transaction(pool) as conn:
        await conn.execute("INSERT INTO cached_entities ...")
"""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from .exceptions import (
    ConnectionPoolError,
    DatabaseError,
    IntegrityError,
    TransactionError,
)

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT_SECONDS = 30.0


async def _acquire(pool):
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")
    try:
        return await asyncio.wait_for(pool.acquire(), timeout=ACQUIRE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise ConnectionPoolError(
            "Timeout acquiring database connection",
            details={"timeout_seconds": ACQUIRE_TIMEOUT_SECONDS},
        )
    except Exception as e:
        raise ConnectionPoolError(f"Failed to acquire database connection: {e}", cause=e)


@asynccontextmanager
async def database_transaction(pool, isolation: str = "read_committed") -> AsyncIterator[Any]:
    """Acquire a connection and run the block inside a transaction.

    Commits on normal exit and rolls back on any exception, which is
    re-raised as a DatabaseError subtype.

    Raises:
        ConnectionPoolError: No connection could be acquired
        TransactionError: The transaction failed or was rolled back
        IntegrityError: A constraint was violated
    """
    conn = await _acquire(pool)
    try:
        transaction = conn.transaction(isolation=isolation)
        try:
            await transaction.start()
        except Exception as e:
            raise TransactionError(f"Failed to start transaction: {e}", cause=e)

        try:
            yield conn
        except Exception as e:
            try:
                await transaction.rollback()
                logger.debug("Transaction rolled back")
            except Exception as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise _convert_db_exception(e)

        try:
            await transaction.commit()
        except Exception as e:
            raise _convert_db_exception(e)
    finally:
        await pool.release(conn)


@asynccontextmanager
async def database_connection(pool) -> AsyncIterator[Any]:
    """Acquire a plain connection for reads."""
    conn = await _acquire(pool)
    try:
        yield conn
    except asyncpg.PostgresError as e:
        raise _convert_db_exception(e)
    finally:
        await pool.release(conn)


def _convert_db_exception(e: Exception) -> Exception:
    """Map driver exceptions onto the DatabaseError family.

    Exceptions that are already part of the hierarchy, or that are not
    database errors at all, pass through unchanged.
    """
    if isinstance(e, DatabaseError):
        return e
    if isinstance(e, asyncpg.UniqueViolationError):
        return IntegrityError(f"Duplicate entry: {e}", constraint="unique", cause=e)
    if isinstance(e, asyncpg.ForeignKeyViolationError):
        return IntegrityError(f"Foreign key violation: {e}", constraint="foreign_key", cause=e)
    if isinstance(e, asyncpg.NotNullViolationError):
        return IntegrityError(f"Not null violation: {e}", constraint="not_null", cause=e)
    if isinstance(e, asyncpg.DeadlockDetectedError):
        return TransactionError(f"Deadlock detected: {e}", operation="transaction", cause=e)
    if isinstance(e, asyncpg.QueryCanceledError):
        return TransactionError(f"Query cancelled: {e}", operation="query", cause=e)
    if isinstance(e, (asyncpg.PostgresError, asyncpg.InterfaceError)):
        return DatabaseError(f"Database operation failed: {e}", cause=e)
    return e


async def _init_connection(conn) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def create_pool(
    database_url: str,
    min_size: int = 1,
    max_size: int = 10,
    command_timeout: float = 60.0,
):
    """Create a pool whose connections encode and decode JSONB as Python objects.

    Raises:
        ConnectionPoolError: The pool could not be created
    """
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            init=_init_connection,
        )
    except Exception as e:
        raise ConnectionPoolError(f"Failed to create database pool: {e}", cause=e)
    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def close_pool(pool, timeout: float = 10.0):
    if pool is None:
        return
    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
        logger.info("Database pool closed")
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()


__all__ = [
    "database_transaction",
    "database_connection",
    "create_pool",
    "close_pool",
]
