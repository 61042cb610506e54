"""Static fallback dataset used when the backend is unreachable or has no match."""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from .config import Config
from .models import (
    CityDisplayModel,
    CitySummary,
    ConsumptionPoint,
    Initiative,
    RecyclingPoint,
    Trend,
    WaterSource,
    WaterUsage,
)
from .normalizer import unslugify

PLACEHOLDER_SOURCES: Tuple[WaterSource, ...] = (
    WaterSource("Reservoirs", 70),
    WaterSource("Groundwater", 20),
    WaterSource("Other", 10),
)

PLACEHOLDER_INITIATIVES: Tuple[Initiative, ...] = (
    Initiative(
        name="Water Conservation Program",
        description="Citywide initiative to reduce water usage",
        year=2019,
        impact="Reduced per capita consumption by 10%",
    ),
    Initiative(
        name="Green Infrastructure Plan",
        description="Implementation of natural water management systems",
        year=2020,
        impact="Improved stormwater management by 15%",
    ),
)

_PLACEHOLDER_CONSUMPTION = (
    ConsumptionPoint(2018, 1100),
    ConsumptionPoint(2019, 1050),
    ConsumptionPoint(2020, 1000),
    ConsumptionPoint(2021, 980),
    ConsumptionPoint(2022, 950),
)

_PLACEHOLDER_RECYCLING = (
    RecyclingPoint(2018, 5),
    RecyclingPoint(2019, 7),
    RecyclingPoint(2020, 9),
    RecyclingPoint(2021, 11),
    RecyclingPoint(2022, 15),
)


@dataclass(frozen=True)
class DefaultCity:
    id: str
    name: str
    country: str
    population: float
    per_capita: float
    total_daily: float
    trend: Trend
    sustainability_score: float


_STANDARD_CITIES = (
    DefaultCity("new_york_city", "New York City", "USA", 8.4, 100, 1000, Trend.DECREASING, 75),
    DefaultCity("london", "London", "UK", 8.9, 90, 900, Trend.DECREASING, 80),
    DefaultCity("tokyo", "Tokyo", "Japan", 13.96, 80, 1600, Trend.STABLE, 85),
    DefaultCity("paris", "Paris", "France", 2.16, 85, 400, Trend.DECREASING, 78),
    DefaultCity("sydney", "Sydney", "Australia", 5.3, 95, 550, Trend.STABLE, 82),
)


@dataclass(frozen=True)
class DefaultDataset:
    """
    Immutable fallback dataset, injected into the resolver.

    `city_by_id` always returns a complete model: known ids get their fixed
    figures, anything else gets generic figures under a name rebuilt from the id.
    """

    entries: Tuple[DefaultCity, ...] = _STANDARD_CITIES
    default_country: str = "USA"
    population: float = 1.0
    per_capita: float = 100
    total_daily: float = 1000
    sustainability_score: float = 70
    unit: str = "gallons"
    challenges: Tuple[str, ...] = ("Water scarcity", "Aging infrastructure", "Climate change impacts")
    sources: Tuple[WaterSource, ...] = PLACEHOLDER_SOURCES
    consumption: Tuple[ConsumptionPoint, ...] = _PLACEHOLDER_CONSUMPTION
    recycling: Tuple[RecyclingPoint, ...] = _PLACEHOLDER_RECYCLING
    initiatives: Tuple[Initiative, ...] = PLACEHOLDER_INITIATIVES
    _by_id: Dict[str, DefaultCity] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_by_id", {e.id: e for e in self.entries})

    @classmethod
    def standard(cls, config: Config = None) -> "DefaultDataset":
        """Stock dataset, with generic figures taken from `config` when given."""
        if config is None:
            return cls()
        return cls(
            population=config.default_population,
            per_capita=config.default_per_capita,
            total_daily=config.default_total_daily,
            sustainability_score=config.default_sustainability_score,
            unit=config.unit_label,
            challenges=tuple(config.default_challenges),
        )

    def cities(self) -> list:
        return [CitySummary(e.id, e.name, e.country) for e in self.entries]

    def get(self, identifier: str):
        return self._by_id.get(identifier)

    def city_by_id(self, identifier: str) -> CityDisplayModel:
        entry = self._by_id.get(identifier)
        if entry:
            name, country, population = entry.name, entry.country, entry.population
            usage = WaterUsage(entry.per_capita, entry.total_daily, self.unit, entry.trend)
            score = entry.sustainability_score
        else:
            name = unslugify(identifier) or identifier
            country = self.default_country
            population = self.population
            usage = WaterUsage(self.per_capita, self.total_daily, self.unit, Trend.STABLE)
            score = self.sustainability_score

        return CityDisplayModel(
            id=identifier,
            name=name,
            country=country,
            population=population,
            water_usage=usage,
            water_sources=self.sources,
            water_consumption=self.consumption,
            water_recycling=self.recycling,
            sustainability_score=score,
            challenges=self.challenges,
            initiatives=self.initiatives,
            match_method="default",
        )
