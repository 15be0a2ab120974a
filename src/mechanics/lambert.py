"""Lambert solver — universal-variable formulation with Numba JIT.

Solves the Lambert boundary value problem: given two position vectors
r1, r2 and a time-of-flight tof, find the velocity vectors v1, v2
that connect them under two-body dynamics.  Single revolution only.

Reference:
    Bate, Mueller, White. "Fundamentals of Astrodynamics", ch. 5, 1971.
    Vallado, D. "Fundamentals of Astrodynamics and Applications", alg. 58.

All units: km, seconds, km^3/s^2.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
from numba import njit

from config import settings

logger = logging.getLogger("slingshot.lambert")

# Upper bound on psi for a single-revolution arc (E2 - E1 < 2 pi)
_PSI_MAX = 4.0 * math.pi * math.pi


class LambertNonConvergence(ArithmeticError):
    """Raised when no transfer arc is found for the given geometry / tof."""


# --------------------------------------------------------------------------- #
#  Stumpff functions c2(psi), c3(psi) and their derivatives
# --------------------------------------------------------------------------- #
@njit(cache=True)
def _stumpff(psi: float) -> tuple:
    if abs(psi) < 1e-10:
        return 0.5, 1.0 / 6.0
    if psi > 0.0:
        sp = math.sqrt(psi)
        return (1.0 - math.cos(sp)) / psi, (sp - math.sin(sp)) / (psi * sp)
    sp = math.sqrt(-psi)
    return (math.cosh(sp) - 1.0) / (-psi), (math.sinh(sp) - sp) / ((-psi) * sp)


@njit(cache=True)
def _stumpff_derivatives(psi: float, c2: float, c3: float) -> tuple:
    if abs(psi) < 1e-10:
        return -1.0 / 24.0, -1.0 / 120.0
    return (1.0 - psi * c3 - 2.0 * c2) / (2.0 * psi), (c2 - 3.0 * c3) / (2.0 * psi)


# --------------------------------------------------------------------------- #
#  Universal-variable iteration
# --------------------------------------------------------------------------- #
@njit(cache=True)
def _solve_lambert_uv(
    r1: np.ndarray,
    r2: np.ndarray,
    tof: float,
    mu: float,
    prograde: bool,
    max_iter: int,
    tol: float,
) -> tuple:
    """Newton-Raphson on the universal variable psi with bisection fallback.

    Returns
    -------
    v1, v2 : (3,) departure and arrival velocity vectors (km/s)
    status : 0 converged, 1 degenerate geometry, 2 iteration budget exhausted
    """
    r1_mag = np.linalg.norm(r1)
    r2_mag = np.linalg.norm(r2)
    cross_z = r1[0] * r2[1] - r1[1] * r2[0]

    cos_dnu = np.dot(r1, r2) / (r1_mag * r2_mag)
    cos_dnu = max(-1.0, min(1.0, cos_dnu))

    # Short way when the motion sense and the cross product agree
    dnu = math.acos(cos_dnu)
    if (prograde and cross_z < 0.0) or (not prograde and cross_z >= 0.0):
        dnu = 2.0 * math.pi - dnu

    if 1.0 - cos_dnu < 1e-14:
        return np.zeros(3), np.zeros(3), 1
    A = math.sin(dnu) * math.sqrt(r1_mag * r2_mag / (1.0 - cos_dnu))
    if abs(A) < 1e-14:
        return np.zeros(3), np.zeros(3), 1

    sqrt_mu = math.sqrt(mu)
    psi_low = -_PSI_MAX
    psi_up = _PSI_MAX
    psi = 0.0
    status = 2

    for _ in range(max_iter):
        c2, c3 = _stumpff(psi)
        sqrt_c2 = math.sqrt(c2) if c2 > 1e-30 else 1e-15

        B = r1_mag + r2_mag + A * (psi * c3 - 1.0) / sqrt_c2
        if (A > 0.0 and B < 0.0) or c2 < 1e-30:
            psi_low = psi
            psi = 0.5 * (psi_low + psi_up)
            continue

        chi = math.sqrt(B / c2)
        sqrt_B = math.sqrt(B)
        tof_calc = (chi ** 3 * c3 + A * sqrt_B) / sqrt_mu

        if abs(tof_calc - tof) / tof < tol:
            status = 0
            break

        if tof_calc < tof:
            psi_low = psi
        else:
            psi_up = psi

        dc2, dc3 = _stumpff_derivatives(psi, c2, c3)
        dB = A * ((c3 + psi * dc3) * sqrt_c2 - (psi * c3 - 1.0) * dc2 / (2.0 * sqrt_c2)) / c2
        dchi = (dB * c2 - B * dc2) / (2.0 * c2 * c2 * chi)
        dtof = (3.0 * chi * chi * dchi * c3 + chi ** 3 * dc3 + A * dB / (2.0 * sqrt_B)) / sqrt_mu

        psi_new = psi + (tof - tof_calc) / dtof if abs(dtof) > 1e-30 else psi_up + 1.0
        if psi_low < psi_new < psi_up:
            psi = psi_new
        else:
            psi = 0.5 * (psi_low + psi_up)

    if status != 0:
        return np.zeros(3), np.zeros(3), status

    # Lagrange coefficients from the converged psi
    c2, c3 = _stumpff(psi)
    B = r1_mag + r2_mag + A * (psi * c3 - 1.0) / math.sqrt(c2)
    f = 1.0 - B / r1_mag
    g = A * math.sqrt(B / mu)
    g_dot = 1.0 - B / r2_mag

    v1 = (r2 - f * r1) / g
    v2 = (g_dot * r2 - r1) / g
    return v1, v2, 0


# --------------------------------------------------------------------------- #
#  Public API
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class LambertLeg:
    """Transfer arc between two bodies and its endpoint delta-v split."""
    v1: np.ndarray          # transfer velocity leaving body 1 (km/s)
    v2: np.ndarray          # transfer velocity reaching body 2 (km/s)
    dv_departure: float     # |v1 - v_body1|
    dv_arrival: float       # |v_body2 - v2|

    @property
    def dv_total(self) -> float:
        return self.dv_departure + self.dv_arrival


def solve_lambert(
    r1: np.ndarray,
    r2: np.ndarray,
    tof: float,
    mu: float,
    prograde: bool = True,
) -> tuple[np.ndarray, np.ndarray]:
    """Solve Lambert's problem.

    Parameters
    ----------
    r1, r2 : (3,) position vectors in km
    tof : time of flight in seconds
    mu : gravitational parameter of the central body
    prograde : prograde transfer if True

    Returns
    -------
    (v1, v2) : departure and arrival velocities (km/s)

    Raises
    ------
    LambertNonConvergence : non-positive tof, collinear positions, or no
        convergence within ``settings.lambert_max_iter`` iterations.
    """
    if not tof > 0.0:
        raise LambertNonConvergence(f"Non-positive time of flight: {tof!r} s")

    r1 = np.ascontiguousarray(r1, dtype=np.float64)
    r2 = np.ascontiguousarray(r2, dtype=np.float64)

    v1, v2, status = _solve_lambert_uv(
        r1, r2, float(tof), float(mu), prograde,
        settings.lambert_max_iter, settings.lambert_tol,
    )
    if status == 1:
        raise LambertNonConvergence("Degenerate geometry: position vectors are collinear")
    if status != 0:
        raise LambertNonConvergence(
            f"No convergence after {settings.lambert_max_iter} iterations (tof={tof / 86400.0:.2f} d)"
        )
    return v1, v2


def lambert_transfer(
    r1: np.ndarray,
    r2: np.ndarray,
    v_body1: np.ndarray,
    v_body2: np.ndarray,
    tof: float,
    mu: float,
    prograde: bool = True,
) -> LambertLeg:
    """Lambert arc plus the delta-v needed to leave body 1 and match body 2."""
    v1, v2 = solve_lambert(r1, r2, tof, mu, prograde)
    dv1 = float(np.linalg.norm(v1 - np.asarray(v_body1, dtype=np.float64)))
    dv2 = float(np.linalg.norm(np.asarray(v_body2, dtype=np.float64) - v2))
    logger.debug("Lambert leg: tof=%.2f d  dv_dep=%.4f  dv_arr=%.4f km/s",
                 tof / 86400.0, dv1, dv2)
    return LambertLeg(v1=v1, v2=v2, dv_departure=dv1, dv_arrival=dv2)
