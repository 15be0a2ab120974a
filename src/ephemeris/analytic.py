"""Analytic planetary ephemeris from mean Keplerian elements.

Uses the JPL approximate mean elements with linear secular rates
(heliocentric, ecliptic and equinox of J2000, fitted over 1800-2050):

    Standish, E. M. "Keplerian Elements for Approximate Positions of the
    Major Planets", JPL Solar System Dynamics.

Deterministic and offline; accurate to a few hundredths of a degree for
the inner planets, enough for launch-window exploration.  Earth entries
describe the Earth-Moon barycentre.
"""

from __future__ import annotations

import math
from typing import Protocol

import numpy as np

from ephemeris.bodies import AU_KM, GM_SUN
from mechanics.kepler import KeplerianElements, keplerian_to_cartesian, mean_to_true_anomaly
from mechanics.transforms import centuries_since_j2000

TWO_PI = 2.0 * math.pi


class EphemerisProvider(Protocol):
    """Anything answering heliocentric osculating elements for a body."""

    def elements(self, epoch_mjd2000: float, body_id: int) -> KeplerianElements: ...


# --------------------------------------------------------------------------- #
#  Mean elements at J2000 and rates per Julian century
#  a [AU], e, I [deg], L [deg], long. perihelion [deg], long. node [deg]
# --------------------------------------------------------------------------- #
_MEAN_ELEMENTS: dict[int, tuple[tuple[float, ...], tuple[float, ...]]] = {
    199: (  # Mercury
        (0.38709927, 0.20563593, 7.00497902, 252.25032350, 77.45779628, 48.33076593),
        (0.00000037, 0.00001906, -0.00594749, 149472.67411175, 0.16047689, -0.12534081),
    ),
    299: (  # Venus
        (0.72333566, 0.00677672, 3.39467605, 181.97909950, 131.60246718, 76.67984255),
        (0.00000390, -0.00004107, -0.00078890, 58517.81538729, 0.00268329, -0.27769418),
    ),
    399: (  # Earth-Moon barycentre
        (1.00000261, 0.01671123, -0.00001531, 100.46457166, 102.93768193, 0.0),
        (0.00000562, -0.00004392, -0.01294668, 35999.37244981, 0.32327364, 0.0),
    ),
    499: (  # Mars
        (1.52371034, 0.09339410, 1.84969142, -4.55343205, -23.94362959, 49.55953891),
        (0.00001847, 0.00007882, -0.00813131, 19140.30268499, 0.44441088, -0.29257343),
    ),
    599: (  # Jupiter
        (5.20288700, 0.04838624, 1.30439695, 34.39644051, 14.72847983, 100.47390909),
        (-0.00011607, -0.00013253, -0.00183714, 3034.74612775, 0.21252668, 0.20469106),
    ),
    699: (  # Saturn
        (9.53667594, 0.05386179, 2.48599187, 49.95424423, 92.59887831, 113.66242448),
        (-0.00125060, -0.00050991, 0.00193609, 1222.49362201, -0.41897216, -0.28867794),
    ),
    799: (  # Uranus
        (19.18916464, 0.04725744, 0.77263783, 313.23810451, 170.95427630, 74.01692503),
        (-0.00196176, -0.00004397, -0.00242939, 428.48202785, 0.40805281, 0.04240589),
    ),
    899: (  # Neptune
        (30.06992276, 0.00859048, 1.77004347, -55.12002969, 44.96476227, 131.78422574),
        (0.00026291, 0.00005105, 0.00035372, 218.45945325, -0.32241464, -0.00508664),
    ),
    999: (  # Pluto
        (39.48211675, 0.24882730, 17.14001206, 238.92903833, 224.06891629, 110.30393684),
        (-0.00031596, 0.00005170, 0.00004818, 145.20780515, -0.04062942, -0.01183482),
    ),
}


class AnalyticEphemeris:
    """Mean-element ephemeris for Mercury .. Pluto, keyed by NAIF ID."""

    def __contains__(self, body_id: int) -> bool:
        return body_id in _MEAN_ELEMENTS

    def available_bodies(self) -> list[int]:
        return list(_MEAN_ELEMENTS)

    def elements(self, epoch_mjd2000: float, body_id: int) -> KeplerianElements:
        """Osculating-equivalent elements of a planet at an MJD2000 epoch.

        Raises KeyError for bodies outside the table.
        """
        if body_id not in _MEAN_ELEMENTS:
            raise KeyError(f"No analytic ephemeris for body {body_id}")
        base, rate = _MEAN_ELEMENTS[body_id]
        T = centuries_since_j2000(epoch_mjd2000)
        a_au, ecc, inc, mean_long, long_peri, long_node = (
            x0 + dx * T for x0, dx in zip(base, rate)
        )

        argp = math.radians(long_peri - long_node) % TWO_PI
        mean_anomaly = math.radians(mean_long - long_peri) % TWO_PI

        return KeplerianElements(
            a=a_au * AU_KM,
            e=ecc,
            i=math.radians(inc),
            raan=math.radians(long_node) % TWO_PI,
            argp=argp,
            nu=mean_to_true_anomaly(mean_anomaly, ecc),
        )

    def get_state(self, body_id: int, epoch_mjd2000: float) -> tuple[np.ndarray, np.ndarray]:
        """Heliocentric (position, velocity) in km and km/s."""
        return keplerian_to_cartesian(self.elements(epoch_mjd2000, body_id), GM_SUN)


ANALYTIC_EPHEMERIS = AnalyticEphemeris()
