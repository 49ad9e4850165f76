#!/usr/bin/env python3
"""
Run the full compare + recommendation flow from the command line.

Criteria are passed as a JSON object, e.g.:
    python scripts/recommend.py mortgages '{"loanAmount": 250000, "horizonMonths": 24}'
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

from rateguide.criteria import parse_criteria
from rateguide.errors import RateGuideError
from rateguide.logging import setup_logging
from rateguide.models import CATEGORIES
from rateguide.services.compare_service import recommend
from rateguide.services.container import build_container


async def run(category: str, raw: dict, use_ai: bool, skip_cache: bool) -> dict:
    criteria = parse_criteria(category, raw)
    container = build_container()
    try:
        result = await recommend(container, category, criteria, use_ai=use_ai, skip_cache=skip_cache)
    finally:
        await container.aclose()
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def main():
    parser = argparse.ArgumentParser(description="Print a recommendation for a category.")
    parser.add_argument("category", choices=CATEGORIES)
    parser.add_argument("criteria", nargs="?", default="{}", help="criteria as a JSON object")
    parser.add_argument("--no-ai", action="store_true", help="deterministic recommendation only")
    parser.add_argument("--skip-cache", action="store_true", help="bypass cached payloads")
    args = parser.parse_args()

    try:
        raw = json.loads(args.criteria)
    except ValueError:
        print("ERROR: criteria must be a JSON object")
        return 1
    if not isinstance(raw, dict):
        print("ERROR: criteria must be a JSON object")
        return 1

    setup_logging()
    try:
        out = asyncio.run(run(args.category, raw, not args.no_ai, args.skip_cache))
    except RateGuideError as e:
        print(f"ERROR: {e.code}: {e}")
        return 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
