"""
PostgreSQL connection handle.

The gateway owns a single `Database` instance for the lifetime of the
process: it is opened when the app is created, closed at shutdown, and
reached from request handlers through `get_database()`.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2.extras import DictCursor
from psycopg2.pool import ThreadedConnectionPool
from dotenv import load_dotenv
from flask import current_app

# Load .env variables from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", 5))
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", 30))
HEALTH_CHECK_TIMEOUT = 2.0

EXTENSION_KEY = "history_db"


class Database:
    """
    Owns the connection pool used to append history records.

    Usage:
        db = Database(DATABASE_URL)
        db.open()
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(...)
        db.close()
    """

    def __init__(
        self,
        dsn: Optional[str],
        max_connections: int = DB_POOL_MAX,
        checkout_timeout: float = DB_POOL_TIMEOUT,
    ) -> None:
        self.dsn = dsn
        self.max_connections = max_connections
        self.checkout_timeout = checkout_timeout
        self._pool: Optional[ThreadedConnectionPool] = None
        # ThreadedConnectionPool raises when exhausted; callers queue here instead.
        self._slots = threading.BoundedSemaphore(max_connections)

    def open(self) -> None:
        """
        Create the connection pool.

        Raises:
            RuntimeError: If no DSN is configured.
            psycopg2.Error: If the server cannot be reached.
        """
        if not self.dsn:
            raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")
        if self.is_open():
            return
        self._pool = ThreadedConnectionPool(
            1, self.max_connections, self.dsn, cursor_factory=DictCursor
        )
        logging.info("Database connection pool opened.")

    def close(self) -> None:
        """Close every pooled connection. Safe to call more than once."""
        if self._pool is not None and not self._pool.closed:
            self._pool.closeall()
            logging.info("Database connection pool closed.")
        self._pool = None

    def is_open(self) -> bool:
        """True while the pool exists and has not been closed."""
        return self._pool is not None and not self._pool.closed

    def is_connected(self) -> bool:
        """
        Readiness flag reported by the health endpoint.

        Runs `SELECT 1` on a pooled connection, so a server that went away
        after startup is reported as disconnected.
        """
        if not self.is_open():
            return False
        try:
            with self.connection(timeout=HEALTH_CHECK_TIMEOUT) as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1;")
        except (psycopg2.Error, RuntimeError) as e:
            logging.warning(f"Database health check failed: {e}")
            return False
        return True

    @contextmanager
    def connection(self, timeout: Optional[float] = None) -> Iterator["psycopg2.extensions.connection"]:
        """
        Borrow a pooled connection inside a transaction.

        Waits up to `timeout` seconds (default `checkout_timeout`) when every
        connection is in use. Commits when the block succeeds, rolls back
        when it raises, and always returns the connection to the pool.

        Raises:
            RuntimeError: The pool is not open, or no connection freed up in time.
        """
        if not self.is_open():
            raise RuntimeError("Database is not connected.")
        if timeout is None:
            timeout = self.checkout_timeout
        if not self._slots.acquire(timeout=timeout):
            raise RuntimeError("Timed out waiting for a database connection.")
        try:
            conn = self._pool.getconn()
            try:
                with conn:
                    yield conn
            finally:
                self._pool.putconn(conn)
        finally:
            self._slots.release()


def get_database() -> Database:
    """
    Return the database handle owned by the current Flask app.

    Raises:
        RuntimeError: If the app was created without a database handle.
    """
    database = current_app.extensions.get(EXTENSION_KEY)
    if database is None:
        raise RuntimeError("No database handle registered on this app.")
    return database
