"""Tabulated ephemeris — spline-interpolated JPL Horizons state vectors.

On warm-up, loads (or fetches from Horizons) state-vector tables for the
requested bodies, fits cubic splines to position and velocity as functions
of Julian Date, and keeps them in memory.  Raw tables are pickled to disk
so restarts skip the network.

Exposes the same ``elements(epoch_mjd2000, body_id)`` provider interface as
the analytic ephemeris, returning osculating elements of the interpolated
heliocentric state.
"""

from __future__ import annotations

import logging
import pickle
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from scipy.interpolate import CubicSpline

from config import settings
from ephemeris.bodies import GM_SUN, PLANETS, CelestialBody
from ephemeris.horizons_client import fetch_state_vectors
from mechanics.kepler import KeplerianElements, cartesian_to_keplerian
from mechanics.transforms import iso_to_jd, mjd2000_to_jd

logger = logging.getLogger("slingshot.ephemeris")


class EphemerisRangeError(ValueError):
    """Raised when a query epoch is outside the tabulated range."""

    def __init__(self, naif_id: int, epoch_jd: float, epoch_start: float, epoch_end: float):
        self.naif_id = naif_id
        self.epoch_jd = epoch_jd
        self.epoch_start = epoch_start
        self.epoch_end = epoch_end
        super().__init__(
            f"Epoch JD {epoch_jd:.2f} is outside the tabulated range "
            f"[{epoch_start:.2f}, {epoch_end:.2f}] for body {naif_id}"
        )


@dataclass
class BodySpline:
    """Spline interpolators for a single body's ephemeris."""

    body: CelestialBody
    epoch_start: float  # JD
    epoch_end: float  # JD
    position: CubicSpline  # vector-valued, (N,) -> (N, 3)
    velocity: CubicSpline


class EphemerisCache:
    """In-memory cache of spline-interpolated ephemeris tables."""

    def __init__(self, cache_dir: Path | None = None, mu: float = GM_SUN) -> None:
        self._splines: dict[int, BodySpline] = {}
        self._cache_dir: Path = cache_dir if cache_dir is not None else settings.ephemeris_cache_dir
        self._mu = mu

    def __len__(self) -> int:
        return len(self._splines)

    def __contains__(self, naif_id: int) -> bool:
        return naif_id in self._splines

    async def warm(
        self,
        start: str,
        end: str,
        step_days: int = 1,
        bodies: list[CelestialBody] | None = None,
    ) -> None:
        """Load tables from disk, fetching from Horizons when the cached
        range does not cover [start, end].

        A body whose fetch fails is logged and left out of the cache.
        """
        if bodies is None:
            bodies = PLANETS

        start_jd = iso_to_jd(start)
        end_jd = iso_to_jd(end)

        for body in bodies:
            path = self._cache_dir / f"table_{body.naif_id}.pkl"

            if path.exists():
                try:
                    self.load(body, path)
                except (OSError, pickle.UnpicklingError, KeyError, ValueError) as e:
                    logger.warning("Cache load failed for %s: %s", body.name, e)
                else:
                    spline = self._splines[body.naif_id]
                    if spline.epoch_start <= start_jd and spline.epoch_end >= end_jd:
                        logger.info("Loaded cached table for %s", body.name)
                        continue
                    logger.info(
                        "Cached table for %s covers [%.1f, %.1f], need [%.1f, %.1f] — re-fetching",
                        body.name, spline.epoch_start, spline.epoch_end, start_jd, end_jd,
                    )
                    self._splines.pop(body.naif_id, None)

            try:
                data = await fetch_state_vectors(
                    horizons_id=body.horizons_id,
                    start=start,
                    stop=end,
                    step_days=step_days,
                )
            except Exception as e:
                logger.error("Failed to fetch ephemeris for %s: %s", body.name, e)
                continue

            self.fit(body, data)
            self.save(body, path, data)
            logger.info("Fetched & cached ephemeris for %s (%d points)", body.name, len(data["epochs"]))

    def fit(self, body: CelestialBody, data: dict) -> None:
        """Fit cubic splines to a raw state-vector table."""
        epochs = np.asarray(data["epochs"], dtype=np.float64)
        self._splines[body.naif_id] = BodySpline(
            body=body,
            epoch_start=float(epochs[0]),
            epoch_end=float(epochs[-1]),
            position=CubicSpline(epochs, data["positions"], axis=0, extrapolate=False),
            velocity=CubicSpline(epochs, data["velocities"], axis=0, extrapolate=False),
        )

    def save(self, body: CelestialBody, path: Path, data: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            pickle.dump({
                "naif_id": body.naif_id,
                "epochs": data["epochs"],
                "positions": data["positions"],
                "velocities": data["velocities"],
            }, f)

    def load(self, body: CelestialBody, path: Path) -> None:
        with open(path, "rb") as f:
            data = pickle.load(f)
        self.fit(body, data)

    # ----- Public query API ----- #

    def validate_epoch(self, naif_id: int, epoch_jd: float) -> None:
        """Raise EphemerisRangeError if epoch is outside the tabulated range."""
        spline = self._splines[naif_id]
        if not spline.epoch_start <= epoch_jd <= spline.epoch_end:
            raise EphemerisRangeError(naif_id, epoch_jd, spline.epoch_start, spline.epoch_end)

    def get_state(self, naif_id: int, epoch_jd: float) -> tuple[np.ndarray, np.ndarray]:
        """Heliocentric (position, velocity) at a Julian Date, km and km/s."""
        self.validate_epoch(naif_id, epoch_jd)
        spline = self._splines[naif_id]
        return (
            np.asarray(spline.position(epoch_jd), dtype=np.float64),
            np.asarray(spline.velocity(epoch_jd), dtype=np.float64),
        )

    def elements(self, epoch_mjd2000: float, body_id: int) -> KeplerianElements:
        """Osculating elements of the interpolated state at an MJD2000 epoch."""
        r, v = self.get_state(body_id, mjd2000_to_jd(epoch_mjd2000))
        return cartesian_to_keplerian(r, v, self._mu)

    def get_epoch_range(self, naif_id: int) -> tuple[float, float]:
        """Return the tabulated epoch range (JD) for a body."""
        spline = self._splines[naif_id]
        return spline.epoch_start, spline.epoch_end

    def available_bodies(self) -> list[int]:
        return list(self._splines.keys())
