#!/usr/bin/env python3
"""
CLI for the City Water Lookup Engine.

Usage:
    python run_engine.py london
    python run_engine.py --list
    python run_engine.py --compare london tokyo
    CITY_REST_URL=https://<project>.supabase.co CITY_REST_KEY=... python run_engine.py new_york_city
"""

import argparse
import asyncio
import json
import logging
import sys

from city_engine.config import Config
from city_engine.engine import CityEngine


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def run(engine: CityEngine, args) -> object:
    if args.list:
        cities = await engine.list_cities()
        return [c.to_dict() for c in cities]
    if args.compare:
        models = await engine.compare_cities(args.compare)
        return [m.to_dict() for m in models]
    model = await engine.get_city_by_id(args.city_id)
    return model.to_dict()


def main():
    parser = argparse.ArgumentParser(description="City Water Lookup Engine")
    parser.add_argument("city_id", nargs="?", help="City id to resolve (e.g. new_york_city)")
    parser.add_argument("--list", action="store_true", help="List available cities")
    parser.add_argument("--compare", nargs="+", metavar="CITY_ID", help="Resolve several cities")
    parser.add_argument("--any-record", action="store_true",
                        help="Fall back to any backend row before the default dataset")
    parser.add_argument("--no-cache", action="store_true", help="Disable cache")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.city_id and not args.list and not args.compare:
        parser.print_help()
        sys.exit(1)

    config = Config.from_env()
    if args.any_record:
        config.enable_any_record_fallback = True

    engine = CityEngine(config, use_cache=not args.no_cache)
    try:
        result = asyncio.run(run(engine, args))
    finally:
        engine.close()
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
