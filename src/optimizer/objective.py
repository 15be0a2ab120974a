"""Objective, grid search and local refinement for flyby transfers.

Evaluates the total delta-v of a departure -> flyby -> arrival transfer
for a search vector x = [dep, ga, arr] (MJD2000 days), sweeps a grid of
epochs (the three-epoch analogue of a pork-chop plot), and polishes the
best grid point with a Nelder-Mead simplex.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize

from config import settings
from ephemeris.analytic import EphemerisProvider
from ephemeris.bodies import GM_SUN, CelestialBody
from mechanics.transfer import DetailLevel, TransferCostReport, evaluate_transfer_cost

logger = logging.getLogger("slingshot.optimizer")

# Penalty value for infeasible solutions
INF_COST = 1e12


@dataclass(frozen=True)
class FlybySequence:
    """Bodies of a single-flyby transfer and the flyby safety limit."""
    departure: CelestialBody
    flyby: CelestialBody
    arrival: CelestialBody
    central_mu: float = GM_SUN
    enforce_safe_radius: bool = True

    @property
    def flyby_rlim(self) -> float:
        return self.flyby.safe_flyby_radius if self.enforce_safe_radius else 0.0

    def evaluate(
        self,
        dep: float,
        ga: float,
        arr: float,
        detail: DetailLevel = DetailLevel.TOTAL,
        ephemeris: EphemerisProvider | None = None,
    ) -> TransferCostReport:
        return evaluate_transfer_cost(
            dep, ga, arr,
            self.departure.naif_id, self.flyby.naif_id, self.arrival.naif_id,
            self.flyby.gm, self.central_mu, self.flyby_rlim,
            detail, ephemeris,
        )


def transfer_cost_objective(
    x: np.ndarray,
    sequence: FlybySequence,
    ephemeris: EphemerisProvider | None = None,
) -> float:
    """Total delta-v for x = [dep, ga, arr], INF_COST when infeasible."""
    dep, ga, arr = (float(t) for t in x)
    if not dep < ga < arr:
        return INF_COST

    dv = sequence.evaluate(dep, ga, arr, ephemeris=ephemeris).dv_total
    return dv if np.isfinite(dv) else INF_COST


# --------------------------------------------------------------------------- #
#  Grid search
# --------------------------------------------------------------------------- #
@dataclass
class TransferGrid:
    """Total delta-v over a (dep, ga, arr) epoch grid, NaN where infeasible."""
    departures: np.ndarray
    flybys: np.ndarray
    arrivals: np.ndarray
    dv: np.ndarray  # (len(departures), len(flybys), len(arrivals))

    @property
    def n_feasible(self) -> int:
        return int(np.count_nonzero(np.isfinite(self.dv)))

    def minimum(self) -> tuple[np.ndarray, float] | None:
        """Epochs and delta-v of the cheapest grid point, None if none is feasible."""
        if self.n_feasible == 0:
            return None
        i, j, k = np.unravel_index(np.nanargmin(self.dv), self.dv.shape)
        x = np.array([self.departures[i], self.flybys[j], self.arrivals[k]])
        return x, float(self.dv[i, j, k])


def transfer_cost_grid(
    departures: np.ndarray,
    flybys: np.ndarray,
    arrivals: np.ndarray,
    sequence: FlybySequence,
    ephemeris: EphemerisProvider | None = None,
) -> TransferGrid:
    """Evaluate every epoch combination; non-increasing epochs are skipped."""
    departures = np.asarray(departures, dtype=np.float64)
    flybys = np.asarray(flybys, dtype=np.float64)
    arrivals = np.asarray(arrivals, dtype=np.float64)

    dv = np.full((len(departures), len(flybys), len(arrivals)), np.nan)
    for i, dep in enumerate(departures):
        for j, ga in enumerate(flybys):
            if ga <= dep:
                continue
            for k, arr in enumerate(arrivals):
                if arr <= ga:
                    continue
                dv[i, j, k] = sequence.evaluate(dep, ga, arr, ephemeris=ephemeris).dv_total

    grid = TransferGrid(departures=departures, flybys=flybys, arrivals=arrivals, dv=dv)
    logger.info("Grid %s -> %s -> %s: %d/%d feasible points",
                sequence.departure.name, sequence.flyby.name, sequence.arrival.name,
                grid.n_feasible, dv.size)
    return grid


# --------------------------------------------------------------------------- #
#  Local refinement
# --------------------------------------------------------------------------- #
@dataclass
class RefinedTransfer:
    x: np.ndarray  # [dep, ga, arr] MJD2000
    dv_total: float
    report: TransferCostReport
    iterations: int
    success: bool


def refine_minimum(
    x0: np.ndarray,
    sequence: FlybySequence,
    ephemeris: EphemerisProvider | None = None,
    step_days: float = 5.0,
    max_iter: int | None = None,
) -> RefinedTransfer:
    """Polish a starting point with Nelder-Mead on the penalised objective.

    The initial simplex spans ``step_days`` along each epoch.  The result
    is never worse than x0.
    """
    x0 = np.asarray(x0, dtype=np.float64)
    f0 = transfer_cost_objective(x0, sequence, ephemeris)
    simplex = np.vstack([x0, x0 + np.diag(np.full(3, step_days))])

    res = minimize(
        transfer_cost_objective,
        x0,
        args=(sequence, ephemeris),
        method="Nelder-Mead",
        options={
            "initial_simplex": simplex,
            "maxiter": max_iter or settings.search_max_iter,
            "xatol": 1e-3,
            "fatol": 1e-6,
        },
    )

    if res.fun <= f0:
        x_best = np.asarray(res.x, dtype=np.float64)
    else:
        x_best = x0
    report = sequence.evaluate(*x_best, detail=DetailLevel.FULL, ephemeris=ephemeris)
    logger.info("Refined %s -> dv=%.4f km/s after %d iterations", x_best, report.dv_total, res.nit)

    return RefinedTransfer(
        x=x_best,
        dv_total=report.dv_total,
        report=report,
        iterations=int(res.nit),
        success=bool(res.success) and report.feasible,
    )


def search_transfer(
    departures: np.ndarray,
    flybys: np.ndarray,
    arrivals: np.ndarray,
    sequence: FlybySequence,
    ephemeris: EphemerisProvider | None = None,
) -> tuple[TransferGrid, RefinedTransfer | None]:
    """Grid search followed by local refinement of the best grid point."""
    grid = transfer_cost_grid(departures, flybys, arrivals, sequence, ephemeris)
    best = grid.minimum()
    if best is None:
        return grid, None
    return grid, refine_minimum(best[0], sequence, ephemeris)
