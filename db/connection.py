"""
db/connection.py
----------------
Manages the PostgreSQL connection pool and the single query execution
primitive every repository goes through.
Uses psycopg2's ThreadedConnectionPool so concurrent requests can share it.
"""

from typing import Any, Optional, Sequence

import psycopg2
from psycopg2 import pool, extras

from config import (
    DATABASE_URL,
    DB_POOL_MAX,
    DB_POOL_MIN,
    DB_STATEMENT_TIMEOUT_MS,
)
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.ThreadedConnectionPool | None = None


def init_pool(min_conn: int = DB_POOL_MIN, max_conn: int = DB_POOL_MAX) -> None:
    """
    Initialize the database connection pool.

    Args:
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.ThreadedConnectionPool(
            min_conn,
            max_conn,
            DATABASE_URL,
            options=f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
        )
        logger.info(f"Database connection pool initialized ({min_conn}-{max_conn} connections).")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise


def get_connection():
    """
    Check a connection out of the pool, creating the pool on first use.

    Returns:
        A psycopg2 connection with no transaction open.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
        psycopg2.pool.PoolError: If all DB_POOL_MAX connections are checked out.
    """
    if _pool is None:
        init_pool()
    return _pool.getconn()


def release_connection(conn) -> None:
    """
    Hand a connection back to the pool.

    A connection the server has closed (restart, idle kill) is discarded
    instead of being reused by the next caller.
    """
    if _pool is None:
        conn.close()
        return
    _pool.putconn(conn, close=bool(conn.closed))


def close_pool() -> None:
    """Close every pooled connection. The next get_connection reopens the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")


# ── EXECUTION ─────────────────────────────────────────────

def execute_query(sql: str, params: Optional[Sequence[Any]] = None) -> list[dict]:
    """
    Run a parameterized statement and return its rows.

    Placeholders are positional ``%s``; values are always bound by the
    driver, never formatted into the SQL text.

    Args:
        sql: Statement text.
        params: Values for the placeholders, in order.

    Returns:
        Rows as dicts keyed by column name. Statements without a result
        set return an empty list.
    """
    conn = get_connection()
    try:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = [dict(r) for r in cur.fetchall()] if cur.description else []
        conn.commit()
        return rows
    except Exception as e:
        if not conn.closed:
            conn.rollback()
        logger.error(f"Query failed: {e}")
        raise
    finally:
        release_connection(conn)


def execute_write(sql: str, params: Optional[Sequence[Any]] = None) -> int:
    """
    Run a parameterized INSERT/UPDATE/DELETE.

    Returns:
        The number of affected rows.
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(sql, params)
            affected = cur.rowcount
        conn.commit()
        return affected
    except Exception as e:
        if not conn.closed:
            conn.rollback()
        logger.error(f"Write failed: {e}")
        raise
    finally:
        release_connection(conn)


def check_connection() -> bool:
    """Ping the database. Returns False instead of raising."""
    try:
        execute_query("SELECT 1 AS ok")
        logger.info("Database connection test successful.")
        return True
    except Exception as e:
        logger.error(f"Database connection test failed: {e}")
        return False
