"""
PostgreSQL connection pool for the workshop database

One ``Database`` per process. The pool is opened on first use, so the
memory backend and the unit tests never touch a server. A block run under
``transaction()`` is a single database transaction: it commits when the
block exits cleanly and rolls back otherwise.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

import psycopg2
from psycopg2.extensions import connection as PgConnection
from psycopg2.pool import SimpleConnectionPool

from cobbler.utils.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Pooled connections to the workshop database"""

    def __init__(self):
        self.pool: Optional[SimpleConnectionPool] = None

    def _open_pool(self) -> SimpleConnectionPool:
        try:
            self.pool = SimpleConnectionPool(
                minconn=settings.DB_MIN_CONNECTIONS,
                maxconn=settings.DB_MAX_CONNECTIONS,
                host=settings.DB_HOST,
                port=settings.DB_PORT,
                database=settings.DB_NAME,
                user=settings.DB_USER,
                password=settings.DB_PASSWORD
            )
        except psycopg2.Error as e:
            logger.error(f"Could not open pool to {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}: {e}")
            raise
        logger.info(
            f"Opened connection pool to {settings.DB_NAME} "
            f"({settings.DB_MIN_CONNECTIONS}-{settings.DB_MAX_CONNECTIONS} connections)"
        )
        return self.pool

    @contextmanager
    def transaction(self) -> Iterator[PgConnection]:
        """
        Borrow a connection for one transaction

        Usage:
            with db.transaction() as conn:
                cursor = conn.cursor()
                cursor.execute("UPDATE enquiries SET ...")
        """
        pool = self.pool or self._open_pool()
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            if isinstance(e, psycopg2.Error):
                logger.error(f"Transaction rolled back: {e}")
            raise
        finally:
            pool.putconn(conn)

    def execute_script(self, statements: Sequence[str]) -> None:
        """Run DDL statements in one transaction"""
        with self.transaction() as conn:
            with conn.cursor() as cursor:
                for statement in statements:
                    cursor.execute(statement)

    def ping(self) -> bool:
        """True when the server answers a trivial query"""
        try:
            with self.transaction() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("SELECT 1")
                    return cursor.fetchone() == (1,)
        except psycopg2.Error as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def close(self):
        if self.pool:
            self.pool.closeall()
            self.pool = None
            logger.info("Database connection pool closed")


# Global database instance
db = Database()
