"""
PostgreSQL connection helpers.
Provides create_pool() and get_db() for use by the Persistence Store.
"""

import logging
from contextlib import contextmanager
from threading import BoundedSemaphore
from typing import Iterator, Optional

from psycopg2.extensions import connection
from psycopg2.extras import DictCursor
from psycopg2.pool import ThreadedConnectionPool


def create_pool(dsn: str, maxconn: int = 10) -> ThreadedConnectionPool:
    """
    Open a thread-safe connection pool with dictionary-based row access.

    Flask's development server and most WSGI servers handle requests on
    worker threads, so the pool must be a ThreadedConnectionPool.

    Args:
        dsn (str): PostgreSQL connection string (DATABASE_URL).
        maxconn (int): Upper bound on open connections.

    Returns:
        ThreadedConnectionPool: Pool whose connections yield DictCursor rows.

    Raises:
        psycopg2.Error: If the first connection cannot be established.
    """
    try:
        return ThreadedConnectionPool(1, maxconn, dsn, cursor_factory=DictCursor)
    except Exception as e:
        logging.error(f"Error connecting to database: {e}")
        # Re-raise so startup fails instead of the first request
        raise


@contextmanager
def get_db(pool: ThreadedConnectionPool, slots: Optional[BoundedSemaphore] = None) -> Iterator[connection]:
    """
    Borrow a connection from the pool for one unit of work.

    ThreadedConnectionPool raises PoolError instead of waiting when every
    connection is checked out, so callers pass a semaphore sized to the
    pool's maxconn; a request then blocks until a connection is returned.

    Commits when the block exits cleanly, rolls back on error, and always
    returns the connection to the pool.

    Usage:
        with get_db(pool, slots) as conn:
            with conn.cursor() as cur:
                cur.execute(...)
    """
    if slots is not None:
        slots.acquire()
    try:
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)
    finally:
        if slots is not None:
            slots.release()
