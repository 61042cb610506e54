"""City resolver: identifier -> CityDisplayModel through an ordered lookup cascade."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from rapidfuzz import fuzz, process, utils

from .config import Config
from .defaults import DefaultDataset
from .models import CityDisplayModel, CitySummary
from .normalizer import name_aliases, slugify, unslugify
from .store import BackendError, RecordSource, escape_like
from .transformer import RecordTransformer

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Awaitable[Optional[Dict]]]


class CityResolver:
    """
    Resolves city identifiers against a record source.

    Strategies run in priority order and the first row found wins:
      1. exact_id     : primary key equals the identifier
      2. exact_name   : case-insensitive name equality, including known aliases
      3. partial_name : name contains the first word; a lone row wins, otherwise
                        the best fuzzy candidate above the cutoff (or no match)
      4. any_record   : any single row (only with enable_any_record_fallback)
    Exhausting the list, or a backend that errors at every step, ends at the
    default dataset. get_city_by_id() never raises.
    """

    def __init__(self, source: RecordSource, defaults: DefaultDataset,
                 config: Optional[Config] = None,
                 transformer: Optional[RecordTransformer] = None):
        self.source = source
        self.defaults = defaults
        self.config = config or Config()
        self.transformer = transformer or RecordTransformer(self.config, source)

        self.strategies: List[Tuple[str, Strategy]] = [
            ("exact_id", self._exact_id),
            ("exact_name", self._exact_name),
            ("partial_name", self._partial_name),
        ]
        if self.config.enable_any_record_fallback:
            self.strategies.append(("any_record", self._any_record))

    async def get_city_by_id(self, identifier: str) -> CityDisplayModel:
        """Resolve `identifier` to a display model, degrading to defaults."""
        t0 = time.time()
        identifier = identifier if isinstance(identifier, str) else str(identifier or "")

        try:
            match = await self._run_cascade(identifier)
            if match:
                method, row = match
                model = await self.transformer.transform(row, match_method=method)
            else:
                model = self.defaults.city_by_id(identifier)
        except Exception as e:
            logger.error(f"Unexpected error resolving '{identifier}': {e}")
            model = self.defaults.city_by_id(identifier)

        elapsed_ms = int((time.time() - t0) * 1000)
        logger.info(f"Resolve '{identifier}' -> {model.name} [{model.match_method}] ({elapsed_ms}ms)")
        return model

    async def _run_cascade(self, identifier: str) -> Optional[Tuple[str, Dict]]:
        if not identifier.strip():
            logger.debug("Blank identifier, skipping backend")
            return None

        for name, strategy in self.strategies:
            try:
                row = await strategy(identifier)
            except BackendError as e:
                logger.warning(f"Strategy {name} for '{identifier}': backend error: {e}")
                continue
            except Exception as e:
                logger.warning(f"Strategy {name} for '{identifier}' failed: {e}")
                continue
            if row:
                logger.debug(f"Strategy {name} matched '{identifier}'")
                return name, row
            logger.debug(f"Strategy {name}: no match for '{identifier}'")
        return None

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _exact_id(self, identifier: str) -> Optional[Dict]:
        rows = await self.source.select_eq(self.config.table_name, "id", identifier, limit=1)
        return rows[0] if rows else None

    async def _exact_name(self, identifier: str) -> Optional[Dict]:
        for candidate in name_aliases(unslugify(identifier)):
            rows = await self.source.select_ilike(
                self.config.table_name, "city_name", escape_like(candidate), limit=1
            )
            if rows:
                return rows[0]
        return None

    async def _partial_name(self, identifier: str) -> Optional[Dict]:
        candidate = unslugify(identifier)
        words = candidate.split()
        if not words:
            return None
        rows = await self.source.select_ilike(
            self.config.table_name,
            "city_name",
            f"%{escape_like(words[0])}%",
            limit=self.config.partial_match_limit,
        )
        if not rows:
            return None
        if len(rows) == 1:
            return rows[0]

        names = [str(r.get("city_name") or "") for r in rows]
        best = process.extractOne(
            candidate, names,
            scorer=fuzz.token_sort_ratio,
            processor=utils.default_process,
            score_cutoff=self.config.partial_match_cutoff,
        )
        if best:
            _, score, idx = best
            logger.debug(f"Partial match '{candidate}' -> '{names[idx]}' (score {score:.0f})")
            return rows[idx]
        logger.debug(f"Partial match '{candidate}': {len(rows)} candidates, none above cutoff")
        return None

    async def _any_record(self, identifier: str) -> Optional[Dict]:
        rows = await self.source.select_all(self.config.table_name, limit=1)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Listing / comparison
    # ------------------------------------------------------------------

    async def list_cities(self) -> List[CitySummary]:
        """Backend cities (plus defaults not already present). Never empty."""
        try:
            rows = await self.source.select_all(
                self.config.table_name, columns=("id", "city_name", "country")
            )
        except BackendError as e:
            logger.warning(f"Listing cities failed, using defaults: {e}")
            return self.defaults.cities()
        except Exception as e:
            logger.error(f"Unexpected error listing cities: {e}")
            return self.defaults.cities()

        cities = []
        for row in rows:
            name = str(row.get("city_name") or "").strip()
            if not name:
                continue
            record_id = row.get("id")
            cities.append(CitySummary(
                id=str(record_id) if record_id is not None and str(record_id).strip() else slugify(name),
                name=name,
                country=str(row.get("country") or "").strip() or "Unknown",
            ))

        if not cities:
            logger.info("No cities in backend, using defaults")
            return self.defaults.cities()

        if self.config.merge_default_cities:
            seen = {c.name.lower() for c in cities}
            for default_city in self.defaults.cities():
                if default_city.name.lower() not in seen:
                    cities.append(default_city)
                    seen.add(default_city.name.lower())

        logger.info(f"Listed {len(cities)} cities ({len(rows)} from backend)")
        return cities

    async def compare_cities(self, identifiers: List[str]) -> List[CityDisplayModel]:
        """Resolve several cities concurrently, in input order."""
        return list(await asyncio.gather(*(self.get_city_by_id(i) for i in identifiers)))
