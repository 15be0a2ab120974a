"""Epoch conversions between calendar dates, Julian Dates and MJD2000.

Transfer epochs are carried as MJD2000: days elapsed since
2000-01-01 00:00 (JD 2451544.5).  The solvers work in seconds.
"""

from __future__ import annotations

from datetime import datetime, timedelta

# --------------------------------------------------------------------------- #
#  Constants
# --------------------------------------------------------------------------- #
DAY_SECONDS = 86400.0
JULIAN_CENTURY_DAYS = 36525.0

_JD_J2000 = 2451545.0  # 2000-01-01 12:00
_JD_MJD2000_ZERO = 2451544.5  # 2000-01-01 00:00
_MJD2000_EPOCH = datetime(2000, 1, 1, 0, 0, 0)


def days_to_seconds(days: float) -> float:
    return days * DAY_SECONDS


# --------------------------------------------------------------------------- #
#  MJD2000 <-> Julian Date
# --------------------------------------------------------------------------- #
def mjd2000_to_jd(mjd2000: float) -> float:
    """Convert MJD2000 days to Julian Date."""
    return mjd2000 + _JD_MJD2000_ZERO


def jd_to_mjd2000(jd: float) -> float:
    """Convert Julian Date to MJD2000 days."""
    return jd - _JD_MJD2000_ZERO


def centuries_since_j2000(mjd2000: float) -> float:
    """Julian centuries elapsed since J2000.0 (2000-01-01 12:00)."""
    return (mjd2000_to_jd(mjd2000) - _JD_J2000) / JULIAN_CENTURY_DAYS


# --------------------------------------------------------------------------- #
#  Calendar <-> MJD2000
# --------------------------------------------------------------------------- #
def datetime_to_mjd2000(dt: datetime) -> float:
    return (dt - _MJD2000_EPOCH).total_seconds() / DAY_SECONDS


def mjd2000_to_datetime(mjd2000: float) -> datetime:
    return _MJD2000_EPOCH + timedelta(days=mjd2000)


def iso_to_mjd2000(iso_str: str) -> float:
    """Convert ISO date string (YYYY-MM-DD[THH:MM:SS]) to MJD2000."""
    return datetime_to_mjd2000(datetime.fromisoformat(iso_str))


def mjd2000_to_iso(mjd2000: float) -> str:
    return mjd2000_to_datetime(mjd2000).isoformat()


def iso_to_jd(iso_str: str) -> float:
    """Convert ISO date string to Julian Date."""
    return mjd2000_to_jd(iso_to_mjd2000(iso_str))


def jd_to_iso(jd: float) -> str:
    """Convert Julian Date to ISO date string."""
    return mjd2000_to_iso(jd_to_mjd2000(jd))
