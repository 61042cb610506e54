"""SQLite-based resolution cache, layered over a CityResolver."""

import asyncio
import json
import logging
import sqlite3
import threading
import time
from typing import List, Optional

from .models import CityDisplayModel, CitySummary

logger = logging.getLogger(__name__)


def _cache_key(identifier: str) -> str:
    """Cache key for an identifier: verbatim, since record ids are case-sensitive."""
    if not isinstance(identifier, str) or not identifier.strip():
        return ""
    return identifier


class CityCache:
    """SQLite cache for resolved city models with a short freshness window."""

    def __init__(self, db_path: str = ":memory:", ttl_seconds: int = 60):
        self.db_path = str(db_path)
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self):
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS city_cache (
                city_key TEXT PRIMARY KEY,
                model_json TEXT NOT NULL,
                created_at REAL NOT NULL,
                expires_at REAL NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_city_expires ON city_cache(expires_at)
        """)
        self._conn.commit()

    def get(self, identifier: str) -> Optional[CityDisplayModel]:
        """Get cached model for identifier, or None if not cached / expired."""
        key = _cache_key(identifier)
        if not key:
            return None
        with self._lock:
            row = self._conn.execute(
                "SELECT model_json FROM city_cache WHERE city_key = ? AND expires_at > ?",
                (key, time.time()),
            ).fetchone()
        if not row:
            return None
        try:
            return CityDisplayModel.from_dict(json.loads(row[0]), match_method="cache")
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            return None

    def put(self, identifier: str, model: CityDisplayModel):
        """Cache a resolved model."""
        key = _cache_key(identifier)
        if not key:
            return
        now = time.time()
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO city_cache (city_key, model_json, created_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (key, json.dumps(model.to_dict()), now, now + self.ttl_seconds),
            )
            self._conn.commit()

    def invalidate(self, identifier: str):
        """Remove a cached model."""
        key = _cache_key(identifier)
        with self._lock:
            self._conn.execute("DELETE FROM city_cache WHERE city_key = ?", (key,))
            self._conn.commit()

    def clear_expired(self):
        """Remove all expired entries."""
        with self._lock:
            deleted = self._conn.execute(
                "DELETE FROM city_cache WHERE expires_at <= ?", (time.time(),)
            ).rowcount
            self._conn.commit()
        if deleted:
            logger.info(f"Cache: cleared {deleted} expired entries")

    @property
    def size(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM city_cache").fetchone()
        return row[0] if row else 0

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None


class CachedResolver:
    """
    Wraps a CityResolver with a CityCache keyed by identifier.

    Default-dataset results are not cached: they usually mean the backend was
    unreachable, and the next request may succeed. SQLite reads and writes
    run in a worker thread.
    """

    def __init__(self, resolver, cache: CityCache):
        self.resolver = resolver
        self.cache = cache

    async def get_city_by_id(self, identifier: str) -> CityDisplayModel:
        cached = await asyncio.to_thread(self.cache.get, identifier)
        if cached:
            logger.debug(f"Cache hit for '{identifier}'")
            return cached
        model = await self.resolver.get_city_by_id(identifier)
        if model.match_method != "default":
            await asyncio.to_thread(self.cache.put, identifier, model)
        return model

    async def list_cities(self) -> List[CitySummary]:
        return await self.resolver.list_cities()

    async def compare_cities(self, identifiers: List[str]) -> List[CityDisplayModel]:
        return list(await asyncio.gather(*(self.get_city_by_id(i) for i in identifiers)))
