"""City Water Lookup Engine: resolves cities to water-usage display models, with static fallbacks."""

from .engine import CityEngine
from .models import CityDisplayModel, CitySummary

__all__ = ["CityEngine", "CityDisplayModel", "CitySummary"]
