#!/usr/bin/env python3
"""
Fetch normalized market series for a category and print them as JSON.

Example:
    python scripts/fetch_products.py savings --months 24
"""
import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from rateguide.logging import setup_logging
from rateguide.models import CATEGORIES
from rateguide.providers.common import SeriesWindow
from rateguide.services.container import build_container
from rateguide.services.live_data import get_live_products


async def run(args) -> dict:
    container = build_container()
    try:
        snapshot = await get_live_products(
            container,
            args.category,
            SeriesWindow(months=args.months),
            months=args.months,
            skip_cache=args.skip_cache,
        )
    finally:
        await container.aclose()
    return snapshot.model_dump(mode="json", by_alias=True)


def main():
    parser = argparse.ArgumentParser(description="Fetch BoE/ONS series for a category.")
    parser.add_argument("category", choices=CATEGORIES)
    parser.add_argument("--months", type=int, default=None, help="lookback in months")
    parser.add_argument("--skip-cache", action="store_true", help="bypass cached payloads")
    args = parser.parse_args()

    setup_logging()
    print(json.dumps(asyncio.run(run(args)), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
