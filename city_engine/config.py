"""Configuration for the city lookup engine."""

import os
from dataclasses import dataclass, field


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


@dataclass
class Config:
    # Backend tables
    table_name: str = "CityWaterUsage"
    consumption_table: str = "CityWaterConsumption"
    recycling_table: str = "CityWaterRecycling"
    sources_table: str = "CityWaterSources"
    initiatives_table: str = "CityInitiatives"

    # Backend connection: REST (PostgREST / Supabase) wins over direct Postgres
    rest_url: str = ""
    rest_key: str = ""
    database_url: str = ""
    request_timeout: float = 5.0

    # Field defaults, applied whenever the raw value is null or zero
    default_per_capita: float = 100
    default_total_daily: float = 1000
    default_sustainability_score: float = 70
    default_recycling_rate: float = 15
    default_population: float = 1.0
    unit_label: str = "gallons"
    challenges_delimiter: str = ";"
    default_challenges: list = field(default_factory=lambda: [
        "Water scarcity",
        "Aging infrastructure",
        "Climate change impacts",
    ])

    # Synthesized 5-year series, oldest year first
    series_end_year: int = 2022
    consumption_multipliers: tuple = (1.10, 1.05, 1.00, 0.98, 0.95)
    recycling_fractions: tuple = (0.70, 0.80, 0.90, 0.95, 1.00)
    recycling_floor: float = 5

    # Resolver
    enable_any_record_fallback: bool = False
    merge_default_cities: bool = True
    partial_match_limit: int = 10
    partial_match_cutoff: int = 80  # rapidfuzz token_sort_ratio

    # Cache
    cache_db: str = ":memory:"
    cache_ttl_seconds: int = 60

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config, overriding defaults from environment variables."""
        config = cls()
        config.rest_url = os.environ.get("CITY_REST_URL", config.rest_url)
        config.rest_key = os.environ.get("CITY_REST_KEY", config.rest_key)
        config.database_url = os.environ.get("DATABASE_URL", config.database_url)
        config.table_name = os.environ.get("CITY_TABLE", config.table_name)
        ttl = os.environ.get("CITY_CACHE_TTL", "")
        if ttl.isdigit():
            config.cache_ttl_seconds = int(ttl)
        if _env_flag("CITY_ANY_RECORD_FALLBACK"):
            config.enable_any_record_fallback = True
        return config
