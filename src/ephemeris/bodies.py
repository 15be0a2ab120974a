"""Celestial body catalog with NAIF IDs and physical parameters.

GM values (gravitational parameter, km^3/s^2) from JPL DE440/441.
Radii in km.  Minimum flyby altitudes are heuristic safety margins
(atmosphere, rings, radiation belts) used as the default pericenter limit.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CelestialBody:
    naif_id: int
    name: str
    gm: float  # km^3 / s^2
    radius: float  # km (mean volumetric)
    min_flyby_altitude: float  # km above the mean radius
    horizons_id: str  # JPL Horizons command / ID string

    @property
    def safe_flyby_radius(self) -> float:
        """Smallest pericenter radius (km) accepted for a flyby of this body."""
        return self.radius + self.min_flyby_altitude


# --------------------------------------------------------------------------- #
#  Sun
# --------------------------------------------------------------------------- #
SUN = CelestialBody(
    naif_id=10, name="Sun", gm=1.32712440018e11,
    radius=695_700.0, min_flyby_altitude=0.0, horizons_id="10",
)

# --------------------------------------------------------------------------- #
#  Planets
# --------------------------------------------------------------------------- #
MERCURY = CelestialBody(
    naif_id=199, name="Mercury", gm=2.2032e4,
    radius=2_439.7, min_flyby_altitude=100.0, horizons_id="199",
)
VENUS = CelestialBody(
    naif_id=299, name="Venus", gm=3.24859e5,
    radius=6_051.8, min_flyby_altitude=250.0, horizons_id="299",
)
EARTH = CelestialBody(
    naif_id=399, name="Earth", gm=3.986004418e5,
    radius=6_371.0, min_flyby_altitude=300.0, horizons_id="399",
)
MARS = CelestialBody(
    naif_id=499, name="Mars", gm=4.282837e4,
    radius=3_389.5, min_flyby_altitude=200.0, horizons_id="499",
)
JUPITER = CelestialBody(
    naif_id=599, name="Jupiter", gm=1.26686534e8,
    radius=69_911.0, min_flyby_altitude=100_000.0, horizons_id="599",
)
SATURN = CelestialBody(
    naif_id=699, name="Saturn", gm=3.7931187e7,
    radius=58_232.0, min_flyby_altitude=80_000.0, horizons_id="699",
)
URANUS = CelestialBody(
    naif_id=799, name="Uranus", gm=5.793939e6,
    radius=25_362.0, min_flyby_altitude=5_000.0, horizons_id="799",
)
NEPTUNE = CelestialBody(
    naif_id=899, name="Neptune", gm=6.836529e6,
    radius=24_622.0, min_flyby_altitude=1_000.0, horizons_id="899",
)

# --------------------------------------------------------------------------- #
#  Dwarf planets
# --------------------------------------------------------------------------- #
PLUTO = CelestialBody(
    naif_id=999, name="Pluto", gm=8.71e2,
    radius=1_188.3, min_flyby_altitude=100.0, horizons_id="999",
)

# --------------------------------------------------------------------------- #
#  Lookup tables
# --------------------------------------------------------------------------- #
PLANETS: list[CelestialBody] = [
    MERCURY, VENUS, EARTH, MARS, JUPITER, SATURN, URANUS, NEPTUNE, PLUTO,
]
ALL_BODIES: list[CelestialBody] = [SUN, *PLANETS]

BODY_BY_ID: dict[int, CelestialBody] = {b.naif_id: b for b in ALL_BODIES}
BODY_BY_NAME: dict[str, CelestialBody] = {b.name.lower(): b for b in ALL_BODIES}

# Sun GM — central body for heliocentric transfers
GM_SUN: float = SUN.gm  # km^3/s^2

# 1 AU in km
AU_KM: float = 1.495978707e8


def resolve_body(identifier: str | int) -> CelestialBody:
    """Resolve a body by NAIF ID or case-insensitive name.

    Raises KeyError for unknown bodies.
    """
    if isinstance(identifier, int):
        return BODY_BY_ID[identifier]

    text = identifier.strip()
    if text.lstrip("-").isdigit():
        naif_id = int(text)
        if naif_id in BODY_BY_ID:
            return BODY_BY_ID[naif_id]
    elif text.lower() in BODY_BY_NAME:
        return BODY_BY_NAME[text.lower()]

    raise KeyError(f"Unknown body: {identifier}")
