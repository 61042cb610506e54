"""Tests for RecordTransformer: raw rows -> display models."""

import math

import pytest

from city_engine.config import Config
from city_engine.defaults import PLACEHOLDER_INITIATIVES, PLACEHOLDER_SOURCES
from city_engine.models import Trend
from city_engine.store import InMemoryRecordSource
from city_engine.transformer import RecordTransformer

from conftest import SAMPLE_ROWS, TABLE, make_city_row


def _recycling_values(model):
    return [p.percentage for p in model.water_recycling]


@pytest.mark.asyncio
async def test_transform_full_row():
    model = await RecordTransformer().transform(SAMPLE_ROWS[0], match_method="exact_id")

    assert model.id == "nyc-001"
    assert model.name == "New York"
    assert model.country == "USA"
    assert model.population == 8.4
    assert model.water_usage.per_capita == 118
    assert model.water_usage.total_daily == 1000
    assert model.water_usage.unit == "gallons"
    assert model.water_usage.trend == Trend.DECREASING
    assert model.sustainability_score == 72
    assert model.challenges == ("Aging infrastructure", "Combined sewer overflows")
    assert model.match_method == "exact_id"


@pytest.mark.asyncio
async def test_synthesized_consumption_series():
    model = await RecordTransformer().transform(SAMPLE_ROWS[0])
    assert [(p.year, p.value) for p in model.water_consumption] == [
        (2018, 1100), (2019, 1050), (2020, 1000), (2021, 980), (2022, 950),
    ]


@pytest.mark.asyncio
async def test_synthesized_recycling_series():
    model = await RecordTransformer().transform(SAMPLE_ROWS[0])
    assert [p.year for p in model.water_recycling] == [2018, 2019, 2020, 2021, 2022]
    assert _recycling_values(model) == [14.0, 16.0, 18.0, 19.0, 20]


@pytest.mark.asyncio
async def test_recycling_below_floor_stays_monotonic():
    raw = make_city_row("Dry Town", **{"recycling_rate (%)": 3})
    model = await RecordTransformer().transform(raw)
    values = _recycling_values(model)
    assert values[-1] == 3
    assert all(a <= b for a, b in zip(values, values[1:]))


@pytest.mark.asyncio
async def test_recycling_floor_applies_to_earliest_year():
    raw = make_city_row("Low Town", **{"recycling_rate (%)": 6})
    model = await RecordTransformer().transform(raw)
    assert _recycling_values(model)[0] == 5


@pytest.mark.asyncio
async def test_plain_recycling_column_is_accepted():
    raw = make_city_row("Alt Town")
    del raw["recycling_rate (%)"]
    raw["recycling_rate"] = 40
    model = await RecordTransformer().transform(raw)
    assert _recycling_values(model)[-1] == 40


@pytest.mark.asyncio
async def test_headcount_population_and_tier_3():
    model = await RecordTransformer().transform(SAMPLE_ROWS[1])
    assert model.population == 3.9
    assert model.water_usage.trend == Trend.INCREASING


@pytest.mark.asyncio
async def test_missing_fields_use_defaults():
    model = await RecordTransformer().transform({"city_name": "Nowhere Springs"})

    assert model.id == "nowhere_springs"
    assert model.country == "Unknown"
    assert model.population == 1.0
    assert model.water_usage.per_capita == 100
    assert model.water_usage.total_daily == 1000
    assert model.water_usage.trend == Trend.STABLE
    assert model.sustainability_score == 70
    assert model.challenges == ("Water scarcity", "Aging infrastructure", "Climate change impacts")
    assert _recycling_values(model)[-1] == 15
    assert model.water_sources == PLACEHOLDER_SOURCES
    assert model.initiatives == PLACEHOLDER_INITIATIVES


@pytest.mark.asyncio
async def test_garbage_values_never_raise():
    raw = {
        "city_name": 42,
        "population": object(),
        "tier": 5,
        "daily_water_usage_mgd": "abc",
        "per_capita_usage_gpd": float("nan"),
        "key_challenges": ["not", "a", "string"],
    }
    model = await RecordTransformer().transform(raw)

    assert model.name == "42"
    assert math.isfinite(model.population) and model.population > 0
    assert model.water_usage.total_daily == 1000
    assert model.water_usage.per_capita == 100
    assert model.water_usage.trend == Trend.STABLE
    assert len(model.challenges) == 3


@pytest.mark.asyncio
async def test_non_dict_record():
    model = await RecordTransformer().transform(None)
    assert len(model.water_consumption) == 5
    assert len(model.challenges) >= 1


@pytest.mark.asyncio
async def test_challenges_and_recycling_hold_for_every_row():
    transformer = RecordTransformer()
    for raw in SAMPLE_ROWS:
        model = await transformer.transform(raw)
        assert len(model.challenges) >= 1
        values = _recycling_values(model)
        assert len(values) == 5
        assert all(a <= b for a, b in zip(values, values[1:]))


@pytest.mark.asyncio
async def test_model_is_immutable():
    model = await RecordTransformer().transform(SAMPLE_ROWS[0])
    with pytest.raises(Exception):
        model.name = "Changed"


# ============================================================
# Secondary tables
# ============================================================


def _source_with_history():
    return InMemoryRecordSource({
        TABLE: SAMPLE_ROWS,
        "CityWaterConsumption": [
            {"city_id": "nyc-001", "year": 2021, "value": 990},
            {"city_id": "nyc-001", "year": 2019, "value": 1010},
            {"city_id": "nyc-001", "year": 2020, "value": 1000},
            {"city_id": "la-002", "year": 2020, "value": 450},
        ],
        "CityWaterSources": [
            {"city_id": "nyc-001", "source": "Catskill/Delaware", "percentage": 90},
            {"city_id": "nyc-001", "source": "Croton", "percentage": 10},
        ],
        "CityWaterRecycling": [
            {"city_id": "nyc-001", "year": 2020},  # missing percentage
        ],
    })


@pytest.mark.asyncio
async def test_fetched_series_used_verbatim_in_year_order():
    transformer = RecordTransformer(Config(), _source_with_history())
    model = await transformer.transform(SAMPLE_ROWS[0])

    assert [(p.year, p.value) for p in model.water_consumption] == [
        (2019, 1010), (2020, 1000), (2021, 990),
    ]
    assert [(s.source, s.percentage) for s in model.water_sources] == [
        ("Catskill/Delaware", 90), ("Croton", 10),
    ]


@pytest.mark.asyncio
async def test_malformed_or_missing_secondary_tables_fall_back():
    transformer = RecordTransformer(Config(), _source_with_history())
    model = await transformer.transform(SAMPLE_ROWS[0])

    # Malformed recycling rows -> synthesized; no initiatives table -> placeholders
    assert len(model.water_recycling) == 5
    assert model.initiatives == PLACEHOLDER_INITIATIVES


@pytest.mark.asyncio
async def test_record_without_id_skips_secondary_lookup():
    source = _source_with_history()
    transformer = RecordTransformer(Config(), source)
    model = await transformer.transform(SAMPLE_ROWS[5])

    assert model.id == "cape_town"
    assert len(model.water_consumption) == 5
    assert source.queries == []


@pytest.mark.asyncio
async def test_unreachable_secondary_source_falls_back():
    transformer = RecordTransformer(Config(), InMemoryRecordSource(fail=True))
    model = await transformer.transform(SAMPLE_ROWS[0])
    assert len(model.water_consumption) == 5
    assert model.water_sources == PLACEHOLDER_SOURCES


@pytest.mark.asyncio
async def test_config_changes_series_window():
    transformer = RecordTransformer(Config(series_end_year=2024))
    model = await transformer.transform(SAMPLE_ROWS[0])
    assert [p.year for p in model.water_consumption] == [2020, 2021, 2022, 2023, 2024]


@pytest.mark.asyncio
async def test_string_valued_trend_strategy():
    transformer = RecordTransformer(trend_strategy=lambda tier: "increasing")
    model = await transformer.transform(make_city_row("Reno"))
    assert model.water_usage.trend == Trend.INCREASING
