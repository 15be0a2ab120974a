"""Transfer cost evaluator — two Lambert legs around a powered gravity assist.

    departure body --(Lambert leg 1)--> flyby body --(Lambert leg 2)--> arrival body

Total cost = departure burn of leg 1 + arrival burn of leg 2 + impulse at
the flyby pericenter.  The evaluator is meant to be called over large
epoch grids: any infeasible stage (Lambert failure, unreachable flyby
geometry, epochs outside the ephemeris) turns the whole report into the
NaN sentinel instead of raising.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from ephemeris.analytic import ANALYTIC_EPHEMERIS, EphemerisProvider
from mechanics.flyby import solve_powered_flyby
from mechanics.kepler import keplerian_to_cartesian
from mechanics.lambert import lambert_transfer
from mechanics.transforms import days_to_seconds

logger = logging.getLogger("slingshot.transfer")


class DetailLevel(IntEnum):
    """How much of the report to fill in; each level includes the previous ones."""
    TOTAL = 1
    EXCESS_VELOCITIES = 2
    LAMBERT_VELOCITIES = 3
    COMPONENTS = 4
    FULL = 5


@dataclass(frozen=True)
class TransferCostReport:
    """Total delta-v plus optional diagnostics, all in km/s and rad.

    v_inf               : (2, 3) incoming / outgoing excess velocity at the flyby body
    lambert_velocities  : (4, 3) leg-1 v1, leg-1 v2, leg-2 v1, leg-2 v2
    dv_components       : (4,) leg-1 departure, leg-2 arrival, unpowered flyby
                          delta |v_inf+ - v_inf-|, powered pericenter impulse
    turn_angle          : flyby turn angle

    Fields above ``detail`` are None.  In an infeasible report every
    requested field is NaN.
    """
    dv_total: float
    detail: DetailLevel = DetailLevel.TOTAL
    v_inf: np.ndarray | None = None
    lambert_velocities: np.ndarray | None = None
    dv_components: np.ndarray | None = None
    turn_angle: float | None = None
    error: str | None = None

    @property
    def feasible(self) -> bool:
        return math.isfinite(self.dv_total)

    @classmethod
    def infeasible(cls, detail: DetailLevel, reason: str) -> TransferCostReport:
        """The NaN sentinel report for a failed evaluation."""
        return cls(
            dv_total=math.nan,
            detail=detail,
            v_inf=np.full((2, 3), np.nan) if detail >= DetailLevel.EXCESS_VELOCITIES else None,
            lambert_velocities=np.full((4, 3), np.nan) if detail >= DetailLevel.LAMBERT_VELOCITIES else None,
            dv_components=np.full(4, np.nan) if detail >= DetailLevel.COMPONENTS else None,
            turn_angle=math.nan if detail >= DetailLevel.FULL else None,
            error=reason,
        )


def evaluate_transfer_cost(
    dep: float,
    ga: float,
    arr: float,
    dep_id: int,
    ga_id: int,
    arr_id: int,
    ga_mu: float,
    central_mu: float,
    ga_rlim: float = 0.0,
    detail: DetailLevel = DetailLevel.TOTAL,
    ephemeris: EphemerisProvider | None = None,
    prograde: bool = True,
) -> TransferCostReport:
    """Evaluate the delta-v of a departure -> flyby -> arrival transfer.

    Parameters
    ----------
    dep, ga, arr : departure, flyby and arrival epochs (MJD2000 days)
    dep_id, ga_id, arr_id : body identifiers understood by the ephemeris
    ga_mu : gravitational parameter of the flyby body (km^3/s^2)
    central_mu : gravitational parameter of the central body (km^3/s^2)
    ga_rlim : minimum pericenter radius of the flyby (km); rp must exceed it
    detail : which diagnostics to include
    ephemeris : provider of Keplerian elements, analytic planets by default
    prograde : direction of motion of both Lambert arcs

    Returns
    -------
    TransferCostReport, the NaN sentinel when any stage is infeasible.
    Epoch ordering is not checked; a non-positive leg time of flight
    makes the Lambert stage fail and yields the sentinel.
    """
    if ephemeris is None:
        ephemeris = ANALYTIC_EPHEMERIS
    detail = DetailLevel(detail)

    t_dep = days_to_seconds(dep)
    t_ga = days_to_seconds(ga)
    t_arr = days_to_seconds(arr)

    try:
        r_dep, v_dep = keplerian_to_cartesian(ephemeris.elements(dep, dep_id), central_mu)
        r_ga, v_ga = keplerian_to_cartesian(ephemeris.elements(ga, ga_id), central_mu)
        r_arr, v_arr = keplerian_to_cartesian(ephemeris.elements(arr, arr_id), central_mu)

        leg1 = lambert_transfer(r_dep, r_ga, v_dep, v_ga, t_ga - t_dep, central_mu, prograde)
        leg2 = lambert_transfer(r_ga, r_arr, v_ga, v_arr, t_arr - t_ga, central_mu, prograde)

        # Heliocentric -> flyby-body-centred
        v_inf_minus = leg1.v2 - v_ga
        v_inf_plus = leg2.v1 - v_ga

        flyby = solve_powered_flyby(v_inf_minus, v_inf_plus, ga_mu, ga_rlim)
    except (ArithmeticError, ValueError) as e:
        logger.debug("Infeasible transfer dep=%.3f ga=%.3f arr=%.3f: %s", dep, ga, arr, e)
        return TransferCostReport.infeasible(detail, f"{type(e).__name__}: {e}")

    dv_total = leg1.dv_departure + leg2.dv_arrival + flyby.dv_pericenter

    return TransferCostReport(
        dv_total=dv_total,
        detail=detail,
        v_inf=np.vstack([v_inf_minus, v_inf_plus]) if detail >= DetailLevel.EXCESS_VELOCITIES else None,
        lambert_velocities=(
            np.vstack([leg1.v1, leg1.v2, leg2.v1, leg2.v2])
            if detail >= DetailLevel.LAMBERT_VELOCITIES else None
        ),
        dv_components=(
            np.array([leg1.dv_departure, leg2.dv_arrival, flyby.dv, flyby.dv_pericenter])
            if detail >= DetailLevel.COMPONENTS else None
        ),
        turn_angle=flyby.turn_angle if detail >= DetailLevel.FULL else None,
    )


def transfer_cost(
    dep: float,
    ga: float,
    arr: float,
    dep_id: int,
    ga_id: int,
    arr_id: int,
    ga_mu: float,
    central_mu: float,
    ga_rlim: float = 0.0,
    ephemeris: EphemerisProvider | None = None,
) -> float:
    """Total delta-v only (NaN when infeasible), the scalar for search loops."""
    return evaluate_transfer_cost(
        dep, ga, arr, dep_id, ga_id, arr_id, ga_mu, central_mu, ga_rlim,
        DetailLevel.TOTAL, ephemeris,
    ).dv_total


def _nan_to_none(values):
    if values is None:
        return None
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim == 0:
        return float(arr) if np.isfinite(arr) else None
    return [_nan_to_none(x) for x in arr]


def report_to_dict(report: TransferCostReport) -> dict:
    """Convert TransferCostReport to a JSON-serializable dict (NaN -> None)."""
    return {
        "feasible": report.feasible,
        "detail": report.detail.name.lower(),
        "dv_total_km_s": _nan_to_none(report.dv_total),
        "v_inf_km_s": _nan_to_none(report.v_inf),
        "lambert_velocities_km_s": _nan_to_none(report.lambert_velocities),
        "dv_components_km_s": _nan_to_none(report.dv_components),
        "turn_angle_rad": _nan_to_none(report.turn_angle),
        "error": report.error,
    }
