"""Keplerian elements <-> Cartesian state conversion and Kepler's equation.

All functions operate in km / km/s / seconds / radians.  Hyperbolic orbits
use the negative semi-major axis convention (a < 0 when e > 1).
Inner conversions are JIT-compiled with Numba.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numba import njit


# --------------------------------------------------------------------------- #
#  Constants
# --------------------------------------------------------------------------- #
TWO_PI = 2.0 * math.pi
_SMALL = 1e-10


@dataclass(frozen=True, slots=True)
class KeplerianElements:
    """Classical orbital elements (ecliptic J2000 when heliocentric)."""
    a: float      # semi-major axis (km), negative for hyperbolas
    e: float      # eccentricity
    i: float      # inclination (rad)
    raan: float   # right ascension of the ascending node (rad)
    argp: float   # argument of periapsis (rad)
    nu: float     # true anomaly (rad)

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        return (self.a, self.e, self.i, self.raan, self.argp, self.nu)


# --------------------------------------------------------------------------- #
#  Elements -> state
# --------------------------------------------------------------------------- #
@njit(cache=True)
def _perifocal_to_inertial(raan: float, argp: float, inc: float) -> np.ndarray:
    """Rotation matrix R3(-raan) R1(-inc) R3(-argp)."""
    co, so = math.cos(raan), math.sin(raan)
    cw, sw = math.cos(argp), math.sin(argp)
    ci, si = math.cos(inc), math.sin(inc)
    rot = np.empty((3, 3))
    rot[0, 0] = co * cw - so * sw * ci
    rot[0, 1] = -co * sw - so * cw * ci
    rot[0, 2] = so * si
    rot[1, 0] = so * cw + co * sw * ci
    rot[1, 1] = -so * sw + co * cw * ci
    rot[1, 2] = -co * si
    rot[2, 0] = sw * si
    rot[2, 1] = cw * si
    rot[2, 2] = ci
    return rot


@njit(cache=True)
def _elements_to_state(a: float, ecc: float, inc: float, raan: float,
                       argp: float, nu: float, mu: float) -> tuple:
    p = a * (1.0 - ecc * ecc)  # semi-latus rectum, positive for a<0 hyperbolas too
    cnu = math.cos(nu)
    snu = math.sin(nu)
    r_mag = p / (1.0 + ecc * cnu)
    vfac = math.sqrt(mu / p)

    r_pf = np.array([r_mag * cnu, r_mag * snu, 0.0])
    v_pf = np.array([-vfac * snu, vfac * (ecc + cnu), 0.0])

    rot = _perifocal_to_inertial(raan, argp, inc)
    return rot @ r_pf, rot @ v_pf


def keplerian_to_cartesian(elements: KeplerianElements, mu: float) -> tuple[np.ndarray, np.ndarray]:
    """Convert orbital elements to a (position, velocity) state.

    Parameters
    ----------
    elements : KeplerianElements
    mu : gravitational parameter of the central body (km^3/s^2)

    Returns
    -------
    (r, v) as (3,) float64 arrays in km and km/s
    """
    return _elements_to_state(
        float(elements.a), float(elements.e), float(elements.i),
        float(elements.raan), float(elements.argp), float(elements.nu), float(mu),
    )


# --------------------------------------------------------------------------- #
#  State -> elements
# --------------------------------------------------------------------------- #
@njit(cache=True)
def _quadrant_angle(cos_x: float, positive: bool) -> float:
    x = math.acos(max(-1.0, min(1.0, cos_x)))
    if positive:
        return x
    return TWO_PI - x


@njit(cache=True)
def _state_to_elements(r: np.ndarray, v: np.ndarray, mu: float) -> tuple:
    r_mag = np.linalg.norm(r)
    v_mag = np.linalg.norm(v)
    rdotv = np.dot(r, v)

    h = np.cross(r, v)
    h_mag = np.linalg.norm(h)
    node = np.array([-h[1], h[0], 0.0])
    n_mag = np.linalg.norm(node)

    e_vec = ((v_mag * v_mag - mu / r_mag) * r - rdotv * v) / mu
    ecc = np.linalg.norm(e_vec)

    energy = 0.5 * v_mag * v_mag - mu / r_mag
    if abs(ecc - 1.0) > _SMALL:
        a = -mu / (2.0 * energy)
    else:
        a = np.inf

    inc = math.acos(max(-1.0, min(1.0, h[2] / h_mag)))
    inclined = n_mag > _SMALL * h_mag  # |n| / |h| = sin(i)

    if inclined:
        raan = _quadrant_angle(node[0] / n_mag, node[1] >= 0.0)
    else:
        raan = 0.0

    # Equatorial orbits carry the longitude of periapsis in argp and
    # circular ones the argument of latitude (or true longitude) in nu.
    retrograde = h[2] < 0.0
    if ecc <= _SMALL:
        argp = 0.0
    elif inclined:
        argp = _quadrant_angle(np.dot(node, e_vec) / (n_mag * ecc), e_vec[2] >= 0.0)
    else:
        argp = math.atan2(e_vec[1], e_vec[0])
        if retrograde:
            argp = -argp
        argp = argp % TWO_PI

    if ecc > _SMALL:
        nu = _quadrant_angle(np.dot(e_vec, r) / (ecc * r_mag), rdotv >= 0.0)
    elif inclined:
        nu = _quadrant_angle(np.dot(node, r) / (n_mag * r_mag), r[2] >= 0.0)
    else:
        nu = math.atan2(r[1], r[0])
        if retrograde:
            nu = -nu
        nu = nu % TWO_PI

    return a, ecc, inc, raan, argp, nu


def cartesian_to_keplerian(r: np.ndarray, v: np.ndarray, mu: float) -> KeplerianElements:
    """Osculating elements of a state vector (km, km/s)."""
    r = np.ascontiguousarray(r, dtype=np.float64)
    v = np.ascontiguousarray(v, dtype=np.float64)
    return KeplerianElements(*(float(x) for x in _state_to_elements(r, v, float(mu))))


# --------------------------------------------------------------------------- #
#  Kepler's equation
# --------------------------------------------------------------------------- #
@njit(cache=True)
def solve_kepler(M: float, ecc: float, tol: float = 1e-13) -> float:
    """Solve M = E - e*sin(E) for the eccentric anomaly (Newton-Raphson)."""
    M = M % TWO_PI
    E = M + ecc * math.sin(M) if ecc < 0.8 else math.pi
    for _ in range(60):
        dE = (E - ecc * math.sin(E) - M) / (1.0 - ecc * math.cos(E))
        E -= dE
        if abs(dE) < tol:
            break
    return E


def mean_to_true_anomaly(M: float, ecc: float) -> float:
    """True anomaly in [0, 2pi) for an elliptic orbit at mean anomaly M."""
    E = solve_kepler(float(M), float(ecc))
    nu = 2.0 * math.atan2(
        math.sqrt(1.0 + ecc) * math.sin(E / 2.0),
        math.sqrt(1.0 - ecc) * math.cos(E / 2.0),
    )
    return nu % TWO_PI
