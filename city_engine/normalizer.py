"""Parsing and normalization helpers for raw city records.

Every function here is total: malformed input is recovered with a default,
never raised to the caller.
"""

import logging
import math
import re
from typing import Callable, Iterable, List, Optional

from .models import Trend

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"(\d+(\.\d+)?)")
_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_WHITESPACE_RE = re.compile(r"\s+")

# Canonical name -> alternate forms the backend is known to store
ALIASES = {
    "new york": ["New York City"],
    "new york city": ["New York"],
    "nyc": ["New York City", "New York"],
    "mexico city": ["Mexico City", "Ciudad de Mexico"],
    "washington": ["Washington D.C.", "Washington DC"],
    "washington dc": ["Washington D.C.", "Washington"],
}

TrendStrategy = Callable[[Optional[str]], Trend]


def parse_population(raw, fallback: float = 1.0) -> float:
    """
    Parse a free-form population string into millions.

    "8.4 million" and "8.4M" are read as millions; "8,400,000" is read as a
    headcount and divided by 1,000,000. Rounded to 2 decimal places. Any
    parse failure, or a zero / non-finite / negative result, yields `fallback`.
    """
    try:
        text = "" if raw is None else str(raw)
        if "million" in text.lower() or "M" in text:
            match = _NUMBER_RE.search(text)
            value = float(match.group(0)) if match else 0.0
        else:
            value = float(_NON_NUMERIC_RE.sub("", text)) / 1_000_000
        value = round(value, 2)
    except (TypeError, ValueError) as e:
        logger.debug(f"Population parse failed for {raw!r}: {e}")
        return fallback

    if not math.isfinite(value) or value <= 0:
        return fallback
    return value


def keyword_trend_strategy(
    decreasing: Iterable[str], increasing: Iterable[str]
) -> TrendStrategy:
    """
    Build a tier -> trend mapping from keyword lists.

    A label containing any `decreasing` keyword maps to DECREASING, else any
    `increasing` keyword maps to INCREASING, else STABLE. Matching is
    case-insensitive substring.
    """
    dec = [k.lower() for k in decreasing]
    inc = [k.lower() for k in increasing]

    def _strategy(tier: Optional[str]) -> Trend:
        label = (tier or "").strip().lower()
        if not label:
            return Trend.STABLE
        if any(k in label for k in dec):
            return Trend.DECREASING
        if any(k in label for k in inc):
            return Trend.INCREASING
        return Trend.STABLE

    return _strategy


# "efficient" / tier-1 cities are cutting usage, "growing" / tier-3 are adding it
TierTrendStrategy = keyword_trend_strategy(
    decreasing=("efficient", "1"),
    increasing=("growing", "3"),
)


def derive_trend(tier: Optional[str], strategy: Optional[TrendStrategy] = None) -> Trend:
    """Map a categorical tier label to a usage trend."""
    strategy = strategy or TierTrendStrategy
    try:
        return Trend(strategy(tier))
    except Exception as e:
        logger.debug(f"Trend strategy failed for tier {tier!r}: {e}")
        return Trend.STABLE


def slugify(name: str) -> str:
    """Derive a city identifier from a display name: "New York City" -> "new_york_city"."""
    return _WHITESPACE_RE.sub("_", (name or "").strip().lower())


def unslugify(identifier: str) -> str:
    """
    Reconstruct a display name from an identifier: "lake_city" -> "Lake City".

    Lossy inverse of slugify(): interior capitals are not recoverable
    ("McAllen" -> "mcallen" -> "Mcallen").
    """
    words = [w for w in (identifier or "").split("_") if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def name_aliases(name: str) -> List[str]:
    """Return `name` followed by its known alternate forms, without duplicates."""
    if not name:
        return []
    candidates = [name]
    key = name.strip().lower()
    candidates.extend(ALIASES.get(key, []))
    # Generic long form: "Quebec City" is often stored as "Quebec"
    if key.endswith(" city") and len(key) > len(" city"):
        candidates.append(name.strip()[: -len(" city")])

    seen = set()
    unique = []
    for c in candidates:
        if c.lower() not in seen:
            seen.add(c.lower())
            unique.append(c)
    return unique


def split_challenges(raw, delimiter: str = ";") -> List[str]:
    """Split a delimited challenges string into trimmed, non-empty entries."""
    if not raw or not isinstance(raw, str):
        return []
    return [part.strip() for part in raw.split(delimiter) if part.strip()]


def safe_number(value, default: float) -> float:
    """Coerce a loosely-typed numeric field; None, zero, NaN and junk give `default`."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number == 0:
        return default
    return int(number) if number.is_integer() else number
