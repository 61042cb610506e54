"""Shared fixtures for the city engine tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from city_engine.config import Config
from city_engine.defaults import DefaultDataset
from city_engine.resolver import CityResolver
from city_engine.store import InMemoryRecordSource

TABLE = "CityWaterUsage"


def make_city_row(city_name: str, record_id=None, **overrides) -> dict:
    """Factory for a backend CityWaterUsage row."""
    row = {
        "city_name": city_name,
        "country": "USA",
        "population": "1.5 million",
        "per_capita_usage_gpd": 110,
        "daily_water_usage_mgd": 500,
        "recycling_rate (%)": 20,
        "sustainability_score": 72,
        "key_challenges": "Drought; Aging infrastructure",
        "tier": "Stable",
    }
    if record_id is not None:
        row["id"] = record_id
    row.update(overrides)
    return row


SAMPLE_ROWS = [
    make_city_row(
        "New York", "nyc-001",
        population="8.4 million", per_capita_usage_gpd=118, daily_water_usage_mgd=1000,
        key_challenges="Aging infrastructure; Combined sewer overflows", tier="Efficient",
    ),
    make_city_row(
        "Los Angeles", "la-002",
        population="3,898,747", per_capita_usage_gpd=105, daily_water_usage_mgd=450,
        **{"recycling_rate (%)": 30}, tier="Tier 3",
    ),
    make_city_row("San Antonio", "sa-003", population="1.4M", tier=None),
    make_city_row("San Francisco", "sf-004", population="815,201", tier="efficient"),
    make_city_row("London", "ldn-005", country="UK", population="8.9 million"),
    make_city_row("Cape Town", country="South Africa", population="garbage"),
]


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def defaults():
    return DefaultDataset.standard()


@pytest.fixture
def source():
    return InMemoryRecordSource({TABLE: SAMPLE_ROWS})


@pytest.fixture
def empty_source():
    return InMemoryRecordSource({TABLE: []})


@pytest.fixture
def failing_source():
    return InMemoryRecordSource({TABLE: SAMPLE_ROWS}, fail=True)


@pytest.fixture
def resolver(source, defaults, config):
    return CityResolver(source, defaults, config)
