"""Data models for the city lookup engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class WaterUsage:
    per_capita: float
    total_daily: float
    unit: str = "gallons"
    trend: Trend = Trend.STABLE


@dataclass(frozen=True)
class WaterSource:
    source: str
    percentage: float


@dataclass(frozen=True)
class ConsumptionPoint:
    year: int
    value: float


@dataclass(frozen=True)
class RecyclingPoint:
    year: int
    percentage: float


@dataclass(frozen=True)
class Initiative:
    name: str
    description: str
    year: int
    impact: str


@dataclass(frozen=True)
class CitySummary:
    id: str
    name: str
    country: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "country": self.country}


@dataclass(frozen=True)
class CityDisplayModel:
    id: str
    name: str
    country: str
    population: float
    water_usage: WaterUsage
    water_sources: Tuple[WaterSource, ...] = ()
    water_consumption: Tuple[ConsumptionPoint, ...] = ()
    water_recycling: Tuple[RecyclingPoint, ...] = ()
    sustainability_score: float = 70
    challenges: Tuple[str, ...] = ()
    initiatives: Tuple[Initiative, ...] = ()
    match_method: str = field(default="default", compare=False)

    def to_dict(self) -> dict:
        """Serialize to the dashboard's JSON shape."""
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "population": self.population,
            "waterUsage": {
                "perCapita": self.water_usage.per_capita,
                "totalDaily": self.water_usage.total_daily,
                "unit": self.water_usage.unit,
                "trend": self.water_usage.trend.value,
            },
            "waterSources": [
                {"source": s.source, "percentage": s.percentage} for s in self.water_sources
            ],
            "waterConsumption": [
                {"year": p.year, "value": p.value} for p in self.water_consumption
            ],
            "waterRecycling": [
                {"year": p.year, "percentage": p.percentage} for p in self.water_recycling
            ],
            "sustainabilityScore": self.sustainability_score,
            "challenges": list(self.challenges),
            "initiatives": [
                {
                    "name": i.name,
                    "description": i.description,
                    "year": i.year,
                    "impact": i.impact,
                }
                for i in self.initiatives
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict, match_method: str = "cache") -> "CityDisplayModel":
        """Reconstruct a model from its to_dict() form."""
        usage = data.get("waterUsage") or {}
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            country=data.get("country", ""),
            population=data.get("population", 1.0),
            water_usage=WaterUsage(
                per_capita=usage.get("perCapita", 0),
                total_daily=usage.get("totalDaily", 0),
                unit=usage.get("unit", "gallons"),
                trend=Trend(usage.get("trend", "stable")),
            ),
            water_sources=tuple(
                WaterSource(s["source"], s["percentage"]) for s in data.get("waterSources", [])
            ),
            water_consumption=tuple(
                ConsumptionPoint(p["year"], p["value"]) for p in data.get("waterConsumption", [])
            ),
            water_recycling=tuple(
                RecyclingPoint(p["year"], p["percentage"]) for p in data.get("waterRecycling", [])
            ),
            sustainability_score=data.get("sustainabilityScore", 70),
            challenges=tuple(data.get("challenges", [])),
            initiatives=tuple(
                Initiative(i["name"], i["description"], i["year"], i["impact"])
                for i in data.get("initiatives", [])
            ),
            match_method=match_method,
        )
