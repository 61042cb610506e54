"""Raw backend record -> CityDisplayModel.

Each field is built independently; a failure in one step is logged and that
field falls back to its default, so transform() always returns a complete model.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from .config import Config
from .defaults import PLACEHOLDER_INITIATIVES, PLACEHOLDER_SOURCES
from .models import (
    CityDisplayModel,
    ConsumptionPoint,
    Initiative,
    RecyclingPoint,
    WaterSource,
    WaterUsage,
)
from .normalizer import (
    TrendStrategy,
    derive_trend,
    parse_population,
    safe_number,
    slugify,
    split_challenges,
)
from .store import BackendError, RecordSource

logger = logging.getLogger(__name__)

# The backend column name carries its unit
RECYCLING_COLUMNS = ("recycling_rate (%)", "recycling_rate")


class RecordTransformer:
    """Builds display models, pulling true history from secondary tables when present."""

    def __init__(self, config: Optional[Config] = None, source: Optional[RecordSource] = None,
                 trend_strategy: Optional[TrendStrategy] = None):
        self.config = config or Config()
        self.source = source
        self.trend_strategy = trend_strategy

    async def transform(self, raw: Dict, match_method: str = "none") -> CityDisplayModel:
        """Convert one raw backend row to a display model. Never raises."""
        raw = raw if isinstance(raw, dict) else {}
        cfg = self.config

        name = self._step("name", lambda: str(raw.get("city_name") or "").strip(), "")
        identifier = self._step("id", lambda: self._identifier(raw, name), slugify(name))
        country = self._step("country", lambda: str(raw.get("country") or "").strip() or "Unknown",
                             "Unknown")
        population = parse_population(raw.get("population"), cfg.default_population)
        trend = derive_trend(raw.get("tier"), self.trend_strategy)

        per_capita = safe_number(raw.get("per_capita_usage_gpd"), cfg.default_per_capita)
        total_daily = safe_number(raw.get("daily_water_usage_mgd"), cfg.default_total_daily)
        score = safe_number(raw.get("sustainability_score"), cfg.default_sustainability_score)
        recycling_rate = safe_number(self._recycling_rate(raw), cfg.default_recycling_rate)

        challenges = self._step(
            "challenges",
            lambda: split_challenges(raw.get("key_challenges"), cfg.challenges_delimiter),
            [],
        ) or list(cfg.default_challenges)

        consumption, recycling, sources, initiatives = await asyncio.gather(
            self._consumption(raw.get("id"), total_daily),
            self._recycling(raw.get("id"), recycling_rate),
            self._sources(raw.get("id")),
            self._initiatives(raw.get("id")),
        )

        return CityDisplayModel(
            id=identifier,
            name=name or identifier,
            country=country,
            population=population,
            water_usage=WaterUsage(
                per_capita=per_capita,
                total_daily=total_daily,
                unit=cfg.unit_label,
                trend=trend,
            ),
            water_sources=tuple(sources),
            water_consumption=tuple(consumption),
            water_recycling=tuple(recycling),
            sustainability_score=score,
            challenges=tuple(challenges),
            initiatives=tuple(initiatives),
            match_method=match_method,
        )

    # ------------------------------------------------------------------
    # Field helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _step(label: str, fn, default):
        try:
            return fn()
        except Exception as e:
            logger.warning(f"Transform step '{label}' failed, using default: {e}")
            return default

    @staticmethod
    def _identifier(raw: Dict, name: str) -> str:
        record_id = raw.get("id")
        if record_id is not None and str(record_id).strip():
            return str(record_id)
        return slugify(name)

    @staticmethod
    def _recycling_rate(raw: Dict):
        for col in RECYCLING_COLUMNS:
            if raw.get(col) is not None:
                return raw[col]
        return None

    def synthesize_consumption(self, daily: float) -> List[ConsumptionPoint]:
        """Five years ending at series_end_year, scaled by the decline curve."""
        years = self._years()
        return [
            ConsumptionPoint(year, round(daily * m))
            for year, m in zip(years, self.config.consumption_multipliers)
        ]

    def synthesize_recycling(self, rate: float) -> List[RecyclingPoint]:
        """
        Five years ending at series_end_year, rising to `rate`.

        Earlier points are floored at recycling_floor (capped at `rate`) and
        never exceed a later point.
        """
        floor = min(self.config.recycling_floor, rate)
        points = []
        running = floor
        years = self._years()
        fractions = self.config.recycling_fractions
        for i, (year, frac) in enumerate(zip(years, fractions)):
            if i == len(years) - 1:
                value = rate
            else:
                value = max(floor, round(rate * frac, 1))
                value = min(max(value, running), rate)
            running = value
            points.append(RecyclingPoint(year, value))
        return points

    def _years(self) -> List[int]:
        end = self.config.series_end_year
        return list(range(end - 4, end + 1))

    # ------------------------------------------------------------------
    # Secondary tables (genuine data wins over synthesized)
    # ------------------------------------------------------------------

    async def _fetch(self, table: str, record_id, ordered: bool) -> List[Dict]:
        if self.source is None or record_id is None:
            return []
        try:
            if ordered:
                return await self.source.select_ordered(table, "city_id", record_id, "year")
            return await self.source.select_eq(table, "city_id", record_id)
        except BackendError as e:
            logger.debug(f"No secondary data from {table} for {record_id}: {e}")
            return []
        except Exception as e:
            logger.warning(f"Unexpected error reading {table} for {record_id}: {e}")
            return []

    async def _consumption(self, record_id, daily: float) -> List[ConsumptionPoint]:
        rows = await self._fetch(self.config.consumption_table, record_id, ordered=True)
        points = _parse_rows(rows, lambda r: ConsumptionPoint(int(r["year"]), float(r["value"])))
        if points:
            return points
        return self._step("consumption", lambda: self.synthesize_consumption(daily),
                          self.synthesize_consumption(self.config.default_total_daily))

    async def _recycling(self, record_id, rate: float) -> List[RecyclingPoint]:
        rows = await self._fetch(self.config.recycling_table, record_id, ordered=True)
        points = _parse_rows(rows, lambda r: RecyclingPoint(int(r["year"]), float(r["percentage"])))
        if points:
            return points
        return self._step("recycling", lambda: self.synthesize_recycling(rate),
                          self.synthesize_recycling(self.config.default_recycling_rate))

    async def _sources(self, record_id) -> Tuple[WaterSource, ...]:
        rows = await self._fetch(self.config.sources_table, record_id, ordered=False)
        sources = _parse_rows(rows, lambda r: WaterSource(str(r["source"]), float(r["percentage"])))
        return tuple(sources) or PLACEHOLDER_SOURCES

    async def _initiatives(self, record_id) -> Tuple[Initiative, ...]:
        rows = await self._fetch(self.config.initiatives_table, record_id, ordered=False)
        initiatives = _parse_rows(rows, lambda r: Initiative(
            name=str(r["name"]),
            description=str(r.get("description") or ""),
            year=int(r["year"]),
            impact=str(r.get("impact") or ""),
        ))
        return tuple(initiatives) or PLACEHOLDER_INITIATIVES


def _parse_rows(rows: List[Dict], build) -> list:
    """Build one item per row; a malformed row discards the whole set."""
    try:
        return [build(r) for r in rows]
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed secondary rows, ignoring: {e}")
        return []
