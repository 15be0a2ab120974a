"""Async client for the JPL Horizons REST API.

Fetches heliocentric ecliptic J2000 state vectors (position + velocity)
for a body over a date range and returns them as numpy arrays.

API docs: https://ssd-api.jpl.nasa.gov/doc/horizons.html
"""

from __future__ import annotations

import logging

import httpx
import numpy as np

logger = logging.getLogger("slingshot.horizons")

HORIZONS_URL = "https://ssd.jpl.nasa.gov/api/horizons.api"


async def fetch_state_vectors(
    horizons_id: str,
    start: str,
    stop: str,
    step_days: int = 1,
    center: str = "500@10",
    timeout: float = 60.0,
) -> dict:
    """Fetch a state-vector table from JPL Horizons for a single body.

    Parameters
    ----------
    horizons_id : Horizons command string (e.g. "499" for Mars)
    start, stop : ISO dates "YYYY-MM-DD"
    step_days : table step in days
    center : Horizons CENTER, "500@10" is the Sun's centre
    timeout : HTTP timeout in seconds

    Returns
    -------
    dict with "epochs" (N,) Julian Dates, "positions" (N, 3) km,
    "velocities" (N, 3) km/s
    """
    params = {
        "format": "text",
        "COMMAND": f"'{horizons_id}'",
        "OBJ_DATA": "NO",
        "MAKE_EPHEM": "YES",
        "EPHEM_TYPE": "VECTORS",
        "CENTER": f"'{center}'",
        "REF_PLANE": "ECLIPTIC",
        "REF_SYSTEM": "J2000",
        "VEC_TABLE": "2",
        "VEC_LABELS": "NO",
        "OUT_UNITS": "'KM-S'",
        "CSV_FORMAT": "YES",
        "START_TIME": f"'{start}'",
        "STOP_TIME": f"'{stop}'",
        "STEP_SIZE": f"'{step_days}d'",
    }

    logger.info("Fetching Horizons vectors for %s  [%s -> %s, %dd]", horizons_id, start, stop, step_days)

    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.get(HORIZONS_URL, params=params)
        resp.raise_for_status()

    return parse_vector_table(resp.text)


def parse_vector_table(text: str) -> dict:
    """Parse a Horizons CSV vector table (between $$SOE and $$EOE).

    Each record is one line: JDTDB, Calendar Date, X, Y, Z, VX, VY, VZ.
    The calendar field is not numeric and is skipped.

    Raises ValueError when the markers or the records are missing.
    """
    lines = text.splitlines()
    try:
        soe = next(i for i, line in enumerate(lines) if line.strip() == "$$SOE")
        eoe = next(i for i, line in enumerate(lines) if line.strip() == "$$EOE")
    except StopIteration:
        raise ValueError("Could not locate $$SOE / $$EOE markers in Horizons response") from None

    rows = []
    for line in lines[soe + 1:eoe]:
        numeric = []
        for field in line.split(","):
            field = field.strip()
            if not field:
                continue
            try:
                numeric.append(float(field))
            except ValueError:
                continue
        if len(numeric) < 7:
            if line.strip():
                logger.warning("Skipping record with %d numeric fields: %s", len(numeric), line[:80])
            continue
        rows.append(numeric[:7])

    if not rows:
        raise ValueError("No data records parsed from Horizons response")

    table = np.array(rows, dtype=np.float64)
    logger.info("Parsed %d Horizons records", len(table))
    return {
        "epochs": table[:, 0].copy(),
        "positions": table[:, 1:4].copy(),
        "velocities": table[:, 4:7].copy(),
    }
