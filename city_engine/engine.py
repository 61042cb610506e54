"""CityEngine: wires record source, defaults, transformer, resolver and cache."""

import logging
import time
from typing import List, Optional

from .cache import CachedResolver, CityCache
from .config import Config
from .defaults import DefaultDataset
from .models import CityDisplayModel, CitySummary
from .resolver import CityResolver
from .store import InMemoryRecordSource, RecordSource
from .transformer import RecordTransformer

logger = logging.getLogger(__name__)


def create_record_source(config: Config) -> RecordSource:
    """REST endpoint if configured, else direct Postgres, else an empty in-memory store."""
    if config.rest_url:
        from .rest_store import RestRecordSource
        logger.info(f"Record source: REST ({config.rest_url})")
        return RestRecordSource(config.rest_url, config.rest_key, timeout=config.request_timeout)
    if config.database_url:
        from .postgres_store import PostgresRecordSource
        logger.info("Record source: Postgres")
        return PostgresRecordSource(config.database_url)
    logger.warning("No backend configured (CITY_REST_URL / DATABASE_URL), serving defaults only")
    return InMemoryRecordSource({config.table_name: []})


class CityEngine:
    """
    City water-usage lookup engine.

    Resolves city identifiers against the configured backend and always
    returns a usable model, falling back to the default dataset.
    """

    def __init__(self, config: Optional[Config] = None, source: Optional[RecordSource] = None,
                 defaults: Optional[DefaultDataset] = None, use_cache: bool = True):
        self.config = config or Config()
        t0 = time.time()

        self.source = source if source is not None else create_record_source(self.config)
        self.defaults = defaults or DefaultDataset.standard(self.config)
        self.transformer = RecordTransformer(self.config, self.source)
        self.resolver = CityResolver(self.source, self.defaults, self.config, self.transformer)

        self.cache = None
        self._front = self.resolver
        if use_cache:
            self.cache = CityCache(self.config.cache_db, self.config.cache_ttl_seconds)
            self._front = CachedResolver(self.resolver, self.cache)

        logger.info(
            f"CityEngine ready in {time.time() - t0:.2f}s, "
            f"strategies={[name for name, _ in self.resolver.strategies]}, "
            f"cache={'on' if self.cache else 'off'}"
        )

    async def list_cities(self) -> List[CitySummary]:
        return await self._front.list_cities()

    async def get_city_by_id(self, identifier: str) -> CityDisplayModel:
        return await self._front.get_city_by_id(identifier)

    async def compare_cities(self, identifiers: List[str]) -> List[CityDisplayModel]:
        return await self._front.compare_cities(identifiers)

    def close(self):
        if self.cache:
            self.cache.close()
        self.source.close()
