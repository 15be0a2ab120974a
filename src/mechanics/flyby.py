"""Powered gravity assist — hyperbolic flyby geometry from v-infinity vectors.

Given the incoming and outgoing hyperbolic excess velocities at a flyby
body, find the common pericenter radius rp of the two hyperbola branches
whose combined deflection equals the angle between the two vectors:

    e(rp, v)  = 1 + rp * v^2 / mu
    d(rp, v)  = 2 * asin(1 / e(rp, v))
    f(rp)     = (d(rp, |v_inf-|) + d(rp, |v_inf+|)) / 2 - turn_angle = 0

The branches generally have different eccentricities at a shared rp, so
f has no closed-form root.  The speed mismatch at pericenter is closed by
an impulsive burn there (the powered part of the flyby).

All units: km, km/s, km^3/s^2, radians.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy.optimize import brentq

from config import settings

logger = logging.getLogger("slingshot.flyby")

_I = np.array([1.0, 0.0, 0.0])
_J = np.array([0.0, 1.0, 0.0])
_K = np.array([0.0, 0.0, 1.0])

# Residual returned for rp <= 0, keeps the search on the physical side
_NONPHYSICAL_RESIDUAL = 1.0


class InfeasibleGeometry(ArithmeticError):
    """No pericenter radius realises the turn, or it violates the safe radius."""


class InvalidInput(ValueError):
    """Zero-length excess velocity or non-positive gravitational parameter."""


@dataclass(frozen=True)
class FlybySolution:
    """Hyperbolic flyby geometry.  Pairs are ordered (incoming, outgoing)."""
    turn_angle: float                  # angle between v_inf- and v_inf+ (rad)
    rp: float                          # pericenter radius (km)
    dv: float                          # |v_inf+ - v_inf-| (km/s)
    dv_pericenter: float               # powered impulse magnitude at pericenter (km/s)
    dv_pericenter_signed: float        # v+_p - v-_p (km/s)
    a: tuple[float, float]             # semi-major axes (km, negative)
    e: tuple[float, float]             # eccentricities (> 1)
    v_pericenter: tuple[float, float]  # pericenter speeds (km/s)
    inclination: float                 # flyby plane inclination (rad)
    raan: float                        # right ascension of ascending node (rad)
    arg_periapsis: float               # argument of periapsis (rad)
    rotation_axis: np.ndarray          # unit normal of the flyby plane
    apse_line: np.ndarray              # unit vector towards pericenter

    @property
    def branch_turn_angles(self) -> tuple[float, float]:
        return (2.0 * math.asin(1.0 / self.e[0]), 2.0 * math.asin(1.0 / self.e[1]))


# --------------------------------------------------------------------------- #
#  Two-body hyperbola relations
# --------------------------------------------------------------------------- #
def hyperbola_eccentricity(rp: float, v_inf: float, mu: float) -> float:
    return 1.0 + rp * v_inf * v_inf / mu


def branch_turn_angle(rp: float, v_inf: float, mu: float) -> float:
    """Deflection of a single hyperbola with pericenter rp and excess speed v_inf."""
    return 2.0 * math.asin(1.0 / hyperbola_eccentricity(rp, v_inf, mu))


def hyperbola_elements(mu: float, v_inf: float, rp: float) -> tuple[float, float]:
    """Semi-major axis and eccentricity of a hyperbola from (v_inf, rp)."""
    return -mu / (v_inf * v_inf), hyperbola_eccentricity(rp, v_inf, mu)


def turn_angle_between(v_inf_minus: np.ndarray, v_inf_plus: np.ndarray) -> float:
    cos_turn = np.dot(v_inf_minus, v_inf_plus) / (
        np.linalg.norm(v_inf_minus) * np.linalg.norm(v_inf_plus)
    )
    return math.acos(max(-1.0, min(1.0, float(cos_turn))))


def rotate_rodrigues(vec: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotate vec about the unit vector axis by angle (right-hand rule)."""
    c = math.cos(angle)
    s = math.sin(angle)
    return vec * c + np.cross(axis, vec) * s + axis * np.dot(axis, vec) * (1.0 - c)


# --------------------------------------------------------------------------- #
#  Pericenter radius
# --------------------------------------------------------------------------- #
def turn_angle_residual(
    v_inf_minus: np.ndarray,
    v_inf_plus: np.ndarray,
    mu: float,
) -> Callable[[float], float]:
    """Build f(rp): mean branch deflection minus the required turn angle."""
    v_minus = float(np.linalg.norm(v_inf_minus))
    v_plus = float(np.linalg.norm(v_inf_plus))
    turn_angle = turn_angle_between(v_inf_minus, v_inf_plus)

    def residual(rp: float) -> float:
        if rp <= 0.0:
            return _NONPHYSICAL_RESIDUAL
        return 0.5 * (branch_turn_angle(rp, v_minus, mu) + branch_turn_angle(rp, v_plus, mu)) - turn_angle

    return residual


def solve_pericenter_radius(v_inf_minus: np.ndarray, v_inf_plus: np.ndarray, mu: float) -> float:
    """Root of the turn-angle residual, searched outward from rp = 0.

    f is positive at rp = 0 and decreases monotonically towards
    -turn_angle as rp grows, so the upper end of the bracket is doubled
    from the characteristic radius mu / v^2 until f changes sign.

    Raises
    ------
    InfeasibleGeometry : zero turn angle (no finite root), anti-parallel
        vectors (root collapses onto rp = 0), or no convergence.
    """
    residual = turn_angle_residual(v_inf_minus, v_inf_plus, mu)
    v_max = max(float(np.linalg.norm(v_inf_minus)), float(np.linalg.norm(v_inf_plus)))
    scale = mu / (v_max * v_max)

    lo, hi = 0.0, scale
    for _ in range(settings.flyby_max_bracket_steps):
        if residual(hi) <= 0.0:
            break
        lo, hi = hi, 2.0 * hi
    else:
        raise InfeasibleGeometry(
            f"No finite pericenter radius below {hi:.3e} km realises the turn angle"
        )

    if residual(hi) == 0.0:
        rp = hi
    else:
        rp, info = brentq(
            residual, lo, hi,
            xtol=settings.flyby_rp_rtol * scale,
            rtol=settings.flyby_rp_rtol,
            maxiter=settings.flyby_max_iter,
            full_output=True,
            disp=False,
        )
        if not info.converged:
            raise InfeasibleGeometry(
                f"Pericenter root-finder did not converge in {info.iterations} iterations"
            )

    if rp <= 0.0 or abs(residual(rp)) > settings.flyby_angle_tol:
        raise InfeasibleGeometry(
            f"Turn angle not attainable with a positive pericenter radius (rp={rp:.3e} km)"
        )
    return float(rp)


# --------------------------------------------------------------------------- #
#  Flyby plane orientation
# --------------------------------------------------------------------------- #
def _quadrant_angle(cos_x: float, positive: bool) -> float:
    x = math.acos(max(-1.0, min(1.0, cos_x)))
    return x if positive else 2.0 * math.pi - x


def _flyby_plane(
    v_inf_minus: np.ndarray,
    v_inf_plus: np.ndarray,
    e_minus: float,
) -> tuple[float, float, float, np.ndarray, np.ndarray]:
    """Inclination, RAAN, argument of periapsis, plane normal and apse line.

    The node line K x u is undefined when the flyby plane coincides with
    the reference plane; RAAN and argument of periapsis are then 0.
    """
    h = np.cross(v_inf_minus, v_inf_plus)
    h_mag = np.linalg.norm(h)
    if h_mag == 0.0:
        raise InfeasibleGeometry("Flyby plane undefined for collinear excess velocities")
    u = h / h_mag

    # Pericenter sits (pi - d-)/2 behind the incoming asymptote, against the turn
    delta_minus = 2.0 * math.asin(1.0 / e_minus)
    apse = rotate_rodrigues(v_inf_minus, u, -(math.pi - delta_minus) / 2.0)
    apse = apse / np.linalg.norm(apse)

    inclination = math.acos(max(-1.0, min(1.0, float(np.dot(_K, u)))))

    node = np.cross(_K, u)
    n_mag = np.linalg.norm(node)
    if n_mag < settings.flyby_node_tol:
        return inclination, 0.0, 0.0, u, apse

    node = node / n_mag
    raan = _quadrant_angle(float(np.dot(_I, node)), float(np.dot(_J, node)) >= 0.0)
    arg_periapsis = _quadrant_angle(float(np.dot(node, apse)), float(np.dot(_K, apse)) >= 0.0)
    return inclination, raan, arg_periapsis, u, apse


# --------------------------------------------------------------------------- #
#  Public API
# --------------------------------------------------------------------------- #
def solve_powered_flyby(
    v_inf_minus: np.ndarray,
    v_inf_plus: np.ndarray,
    mu: float,
    r_lim: float | None = None,
) -> FlybySolution:
    """Solve the powered gravity assist joining two excess velocities.

    Parameters
    ----------
    v_inf_minus : (3,) incoming excess velocity relative to the flyby body (km/s)
    v_inf_plus : (3,) outgoing excess velocity relative to the flyby body (km/s)
    mu : gravitational parameter of the flyby body (km^3/s^2)
    r_lim : optional minimum safe pericenter radius (km); rp must exceed it

    Returns
    -------
    FlybySolution

    Raises
    ------
    InvalidInput : zero-length excess velocity or mu <= 0
    InfeasibleGeometry : no valid pericenter radius, or rp <= r_lim
    """
    v_minus = np.asarray(v_inf_minus, dtype=np.float64)
    v_plus = np.asarray(v_inf_plus, dtype=np.float64)
    v_minus_mag = float(np.linalg.norm(v_minus))
    v_plus_mag = float(np.linalg.norm(v_plus))

    if not mu > 0.0:
        raise InvalidInput(f"Gravitational parameter must be positive, got {mu!r}")
    if v_minus_mag == 0.0 or v_plus_mag == 0.0:
        raise InvalidInput("Excess velocity vectors must be non-zero")

    turn_angle = turn_angle_between(v_minus, v_plus)
    rp = solve_pericenter_radius(v_minus, v_plus, mu)

    if r_lim is not None and not rp > r_lim:
        raise InfeasibleGeometry(
            f"Pericenter radius {rp:.1f} km is not above the safe limit {r_lim:.1f} km"
        )

    a_minus, e_minus = hyperbola_elements(mu, v_minus_mag, rp)
    a_plus, e_plus = hyperbola_elements(mu, v_plus_mag, rp)

    inclination, raan, arg_periapsis, axis, apse = _flyby_plane(v_minus, v_plus, e_minus)

    # Vis-viva at pericenter on each branch
    vp_minus = math.sqrt(mu * (2.0 / rp - 1.0 / a_minus))
    vp_plus = math.sqrt(mu * (2.0 / rp - 1.0 / a_plus))

    logger.debug("Flyby: turn=%.4f rad  rp=%.1f km  dv_p=%.4f km/s",
                 turn_angle, rp, abs(vp_plus - vp_minus))

    return FlybySolution(
        turn_angle=turn_angle,
        rp=rp,
        dv=float(np.linalg.norm(v_plus - v_minus)),
        dv_pericenter=abs(vp_plus - vp_minus),
        dv_pericenter_signed=vp_plus - vp_minus,
        a=(a_minus, a_plus),
        e=(e_minus, e_plus),
        v_pericenter=(vp_minus, vp_plus),
        inclination=inclination,
        raan=raan,
        arg_periapsis=arg_periapsis,
        rotation_axis=axis,
        apse_line=apse,
    )


def flyby_solution_to_dict(sol: FlybySolution) -> dict:
    """Convert FlybySolution to a JSON-serializable dict."""
    return {
        "turn_angle_rad": sol.turn_angle,
        "turn_angle_deg": math.degrees(sol.turn_angle),
        "rp_km": sol.rp,
        "dv_km_s": sol.dv,
        "dv_pericenter_km_s": sol.dv_pericenter,
        "dv_pericenter_signed_km_s": sol.dv_pericenter_signed,
        "a_km": list(sol.a),
        "e": list(sol.e),
        "v_pericenter_km_s": list(sol.v_pericenter),
        "inclination_rad": sol.inclination,
        "raan_rad": sol.raan,
        "arg_periapsis_rad": sol.arg_periapsis,
        "rotation_axis": sol.rotation_axis.tolist(),
        "apse_line": sol.apse_line.tolist(),
    }
