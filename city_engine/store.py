"""Queryable record sources backing the city lookup.

A record source exposes four read operations over named tables. Each returns
a list of row dicts or raises BackendError; "no rows" is an empty list, not
an error.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """The backend could not answer a query (unreachable, bad table, bad response)."""


class RecordSource(ABC):
    """Read-only tabular store."""

    @abstractmethod
    async def select_eq(self, table: str, column: str, value, limit: Optional[int] = None) -> List[Dict]:
        """Rows where `column` equals `value`."""

    @abstractmethod
    async def select_ilike(self, table: str, column: str, pattern: str,
                           limit: Optional[int] = None) -> List[Dict]:
        """Rows where `column` matches a case-insensitive SQL LIKE pattern (% and _ wildcards)."""

    @abstractmethod
    async def select_all(self, table: str, columns: Optional[Iterable[str]] = None,
                         limit: Optional[int] = None) -> List[Dict]:
        """All rows, optionally projected to `columns`."""

    @abstractmethod
    async def select_ordered(self, table: str, column: str, value, order_by: str,
                             limit: Optional[int] = None) -> List[Dict]:
        """Rows where `column` equals `value`, ascending by `order_by`."""

    def close(self):
        pass


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so `text` matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_to_regex(pattern: str) -> "re.Pattern":
    """Translate a SQL LIKE pattern (backslash escapes) into an anchored, case-insensitive regex."""
    parts = []
    escaped = False
    for ch in pattern:
        if escaped:
            parts.append(re.escape(ch))
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


class InMemoryRecordSource(RecordSource):
    """
    Record source over in-process tables ({table_name: [row, ...]}).

    Used for tests and as the empty backend when nothing is configured.
    With fail=True every query raises BackendError, like an unreachable store.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict]]] = None, fail: bool = False):
        self._tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.fail = fail
        self.queries: List[tuple] = []

    def _rows(self, table: str) -> List[Dict]:
        self.queries.append((table,))
        if self.fail:
            logger.debug(f"In-memory source set to fail, query on {table}")
            raise BackendError("backend unreachable")
        if table not in self._tables:
            logger.debug(f"In-memory source has no table {table}")
            raise BackendError(f'relation "{table}" does not exist')
        return self._tables[table]

    @staticmethod
    def _limit(rows: List[Dict], limit: Optional[int]) -> List[Dict]:
        rows = [dict(r) for r in rows]
        return rows[:limit] if limit is not None else rows

    async def select_eq(self, table, column, value, limit=None):
        rows = [r for r in self._rows(table) if r.get(column) == value]
        return self._limit(rows, limit)

    async def select_ilike(self, table, column, pattern, limit=None):
        regex = like_to_regex(pattern)
        rows = [
            r for r in self._rows(table)
            if isinstance(r.get(column), str) and regex.match(r[column])
        ]
        return self._limit(rows, limit)

    async def select_all(self, table, columns=None, limit=None):
        rows = self._rows(table)
        if columns:
            cols = list(columns)
            rows = [{c: r.get(c) for c in cols} for r in rows]
        return self._limit(rows, limit)

    async def select_ordered(self, table, column, value, order_by, limit=None):
        rows = [r for r in self._rows(table) if r.get(column) == value]
        rows = sorted(rows, key=lambda r: (r.get(order_by) is None, r.get(order_by)))
        return self._limit(rows, limit)
