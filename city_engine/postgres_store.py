"""Direct Postgres record source.

Same query surface as RestRecordSource, for deployments that can reach the
database itself. psycopg2 is blocking, so each query runs in a worker thread.
"""

import asyncio
import logging
import threading
from typing import Dict, List, Optional

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from .store import BackendError, RecordSource

logger = logging.getLogger(__name__)


class PostgresRecordSource(RecordSource):
    """Record source backed by a Postgres connection string."""

    def __init__(self, db_url: str):
        self._db_url = db_url
        self._conn = None
        self._lock = threading.Lock()

    def _ensure_connection(self):
        """Connect, or reconnect if the connection was lost."""
        if self._conn is None or self._conn.closed:
            try:
                self._conn = psycopg2.connect(self._db_url)
                self._conn.autocommit = True
            except psycopg2.Error as e:
                self._conn = None
                raise BackendError(f"Postgres unavailable: {e}") from e

    def _run(self, query: sql.Composable, params: tuple) -> List[Dict]:
        with self._lock:
            self._ensure_connection()
            try:
                with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(query, params)
                    return [dict(row) for row in cur.fetchall()]
            except psycopg2.Error as e:
                logger.warning(f"Postgres query error: {e}")
                self._conn = None  # Force reconnect next time
                raise BackendError(str(e)) from e

    @staticmethod
    def _with_limit(query: sql.Composable, limit: Optional[int], params: tuple):
        if limit is None:
            return query, params
        return query + sql.SQL(" LIMIT %s"), params + (limit,)

    async def _execute(self, query, params, limit):
        query, params = self._with_limit(query, limit, params)
        return await asyncio.to_thread(self._run, query, params)

    async def select_eq(self, table, column, value, limit=None):
        query = sql.SQL("SELECT * FROM {} WHERE {} = %s").format(
            sql.Identifier(table), sql.Identifier(column)
        )
        return await self._execute(query, (value,), limit)

    async def select_ilike(self, table, column, pattern, limit=None):
        query = sql.SQL("SELECT * FROM {} WHERE {} ILIKE %s").format(
            sql.Identifier(table), sql.Identifier(column)
        )
        return await self._execute(query, (pattern,), limit)

    async def select_all(self, table, columns=None, limit=None):
        projection = (
            sql.SQL(", ").join(sql.Identifier(c) for c in columns) if columns else sql.SQL("*")
        )
        query = sql.SQL("SELECT {} FROM {}").format(projection, sql.Identifier(table))
        return await self._execute(query, (), limit)

    async def select_ordered(self, table, column, value, order_by, limit=None):
        query = sql.SQL("SELECT * FROM {} WHERE {} = %s ORDER BY {} ASC").format(
            sql.Identifier(table), sql.Identifier(column), sql.Identifier(order_by)
        )
        return await self._execute(query, (value,), limit)

    def close(self):
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
        self._conn = None
