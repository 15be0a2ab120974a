"""Shared fixtures: an Earth -> Mars -> Jupiter epoch sweep.

The sweep is evaluated once per session; tests pick feasible points from
it instead of hard-coding launch dates.
"""

import numpy as np
import pytest

from ephemeris.bodies import EARTH, JUPITER, MARS
from mechanics.transfer import DetailLevel
from optimizer.objective import FlybySequence

DEPARTURES = np.arange(7300.0, 8400.0, 40.0)  # MJD2000, ~Dec 2019 .. Dec 2022
TOF1_DAYS = (150.0, 200.0, 250.0, 300.0, 350.0)
TOF2_DAYS = (500.0, 700.0, 900.0, 1100.0)


@pytest.fixture(scope="session")
def emj_sequence():
    return FlybySequence(departure=EARTH, flyby=MARS, arrival=JUPITER)


@pytest.fixture(scope="session")
def emj_sweep(emj_sequence):
    """All (x, report) pairs of the sweep, feasible or not."""
    results = []
    for dep in DEPARTURES:
        for tof1 in TOF1_DAYS:
            for tof2 in TOF2_DAYS:
                x = np.array([dep, dep + tof1, dep + tof1 + tof2])
                results.append((x, emj_sequence.evaluate(*x, detail=DetailLevel.FULL)))
    return results


@pytest.fixture(scope="session")
def emj_feasible(emj_sweep):
    feasible = [(x, r) for x, r in emj_sweep if r.feasible]
    assert feasible, "Earth-Mars-Jupiter sweep produced no feasible transfer"
    return feasible
