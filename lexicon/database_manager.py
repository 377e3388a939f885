#!/usr/bin/env python3
"""
PostgreSQL pool shared by the lexical store
One pool per process. Every connection handed out runs inside a transaction that
commits when the caller's block finishes and rolls back when it raises, so the
row locks taken by merges and backfills are released exactly once.
"""

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Any, Dict, Optional

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .secure_config import DatabaseConfig, get_database_config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Process-wide owner of the lexicon connection pool"""

    _instance: Optional['DatabaseManager'] = None
    _lock = Lock()

    def __new__(cls, config: Optional[DatabaseConfig] = None) -> 'DatabaseManager':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config: Optional[DatabaseConfig] = None):
        if getattr(self, 'pool', None) is not None:
            return
        self.config_obj = config or get_database_config()
        self.pool: Optional[ConnectionPool] = self._open_pool()

    def _open_pool(self) -> ConnectionPool:
        settings = self.config_obj
        try:
            pool = ConnectionPool(
                conninfo=settings.get_connection_string(hide_password=False),
                min_size=1,
                max_size=settings.pool_size,
                timeout=settings.timeout,
                name="lexicon_pool",
            )
        except Exception as exc:
            logger.error(f"Could not open lexicon pool for {settings.get_connection_string()}: {exc}")
            raise
        logger.info(f"Lexicon pool open ({settings.host}:{settings.port}/{settings.database}, "
                    f"max {settings.pool_size} connections)")
        return pool

    @contextmanager
    def get_connection(self, autocommit: bool = False):
        """
        Borrow a connection with the lexicon schema on its search path

        Example:
            with db_manager.get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cursor:
                    cursor.execute("SELECT key FROM lexical_records WHERE key = %s FOR UPDATE", ("run",))
        """
        if self.pool is None:
            raise RuntimeError("Lexicon pool is closed")

        with self.pool.connection() as conn:
            conn.autocommit = autocommit
            if self.config_obj.schema:
                conn.execute(f'SET search_path TO "{self.config_obj.schema}"', prepare=False)
            try:
                yield conn
            except Exception:
                if not autocommit:
                    conn.rollback()
                raise
            else:
                if not autocommit:
                    conn.commit()

    @contextmanager
    def get_cursor(self, dictionary: bool = False, autocommit: bool = False):
        """Cursor on a pooled connection; ``dictionary=True`` yields dict rows"""
        with self.get_connection(autocommit=autocommit) as conn:
            with conn.cursor(row_factory=dict_row) if dictionary else conn.cursor() as cursor:
                yield UnpreparedCursor(cursor)

    def ping(self) -> bool:
        """True when a trivial query round-trips"""
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT 1")
                return cursor.fetchone()[0] == 1
        except Exception as e:
            logger.error(f"Database ping failed: {e}")
            return False

    def describe(self) -> Dict[str, Any]:
        """Connection summary with the password masked"""
        stats = self.pool.get_stats() if self.pool is not None else {}
        return {
            'connection_string': self.config_obj.get_connection_string(hide_password=True),
            'schema': self.config_obj.schema,
            'pool_size': stats.get('pool_size', 0),
        }


class UnpreparedCursor:
    """psycopg cursor whose ``execute`` never creates server-side prepared statements"""

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, query, params=None, **kwargs):
        kwargs.setdefault('prepare', False)
        return self._cursor.execute(query, params, **kwargs)

    def __getattr__(self, name):
        return getattr(self._cursor, name)


_manager_lock = Lock()


def get_database_manager() -> DatabaseManager:
    """The shared manager, opening the pool on first use"""
    with _manager_lock:
        return DatabaseManager()
