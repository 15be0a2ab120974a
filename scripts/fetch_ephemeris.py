#!/usr/bin/env python3
"""Pre-warm the tabulated ephemeris cache from JPL Horizons.

Only needed when running with EPHEMERIS_SOURCE=horizons; the analytic
ephemeris works offline.

Usage:
    python scripts/fetch_ephemeris.py
    python scripts/fetch_ephemeris.py --start 2020-01-01 --end 2040-01-01 --step 2
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time

# Add src to path
sys.path.insert(0, "src")

from config import settings
from ephemeris.bodies import PLANETS, resolve_body
from ephemeris.spline_cache import EphemerisCache


async def main(start: str, end: str, step_days: int, body_names: list[str] | None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logger = logging.getLogger("fetch_ephemeris")

    bodies = [resolve_body(name) for name in body_names] if body_names else PLANETS

    logger.info("Fetching ephemeris for %d bodies [%s → %s] step=%dd",
                len(bodies), start, end, step_days)
    logger.info("Cache directory: %s", settings.ephemeris_cache_dir)

    t0 = time.time()
    cache = EphemerisCache()
    await cache.warm(start=start, end=end, step_days=step_days, bodies=bodies)
    elapsed = time.time() - t0

    logger.info("Done. %d/%d bodies cached in %.1f seconds.", len(cache), len(bodies), elapsed)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Pre-warm the Horizons ephemeris cache")
    parser.add_argument("--start", default=settings.ephemeris_start, help="Start date (ISO)")
    parser.add_argument("--end", default=settings.ephemeris_end, help="End date (ISO)")
    parser.add_argument("--step", type=int, default=settings.ephemeris_step_days, help="Step size in days")
    parser.add_argument("--bodies", nargs="*", default=None,
                        help="Body names or NAIF IDs (default: all planets)")
    args = parser.parse_args()

    asyncio.run(main(args.start, args.end, args.step, args.bodies))
