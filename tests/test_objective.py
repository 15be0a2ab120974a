"""Search drivers: penalised objective, epoch grid and Nelder-Mead refinement."""

import numpy as np
import pytest

from ephemeris.bodies import EARTH, JUPITER, MARS
from optimizer.objective import (
    INF_COST,
    FlybySequence,
    TransferGrid,
    refine_minimum,
    search_transfer,
    transfer_cost_grid,
    transfer_cost_objective,
)


@pytest.fixture(scope="module")
def best_candidate(emj_feasible):
    """Cheapest point of the session sweep."""
    return min(emj_feasible, key=lambda item: item[1].dv_total)


# =============================================================================
# Objective
# =============================================================================

@pytest.mark.parametrize("x", [
    [8000.0, 7900.0, 8500.0],
    [8000.0, 8000.0, 8500.0],
    [8000.0, 8300.0, 8300.0],
])
def test_objective_penalises_unordered_epochs(x, emj_sequence):
    assert transfer_cost_objective(np.array(x), emj_sequence) == INF_COST


def test_objective_matches_report(best_candidate, emj_sequence):
    x, report = best_candidate
    assert transfer_cost_objective(x, emj_sequence) == pytest.approx(report.dv_total)


def test_sequence_safe_radius_toggle():
    strict = FlybySequence(EARTH, MARS, JUPITER)
    loose = FlybySequence(EARTH, MARS, JUPITER, enforce_safe_radius=False)
    assert strict.flyby_rlim == MARS.safe_flyby_radius
    assert loose.flyby_rlim == 0.0


# =============================================================================
# Grid search
# =============================================================================

def test_grid_minimum_around_feasible_point(best_candidate, emj_sequence):
    x, report = best_candidate
    grid = transfer_cost_grid(
        x[0] + np.array([-10.0, 0.0, 10.0]),
        x[1] + np.array([-10.0, 0.0, 10.0]),
        x[2] + np.array([-20.0, 0.0, 20.0]),
        emj_sequence,
    )
    assert grid.dv.shape == (3, 3, 3)
    assert grid.n_feasible >= 1
    assert grid.dv[1, 1, 1] == pytest.approx(report.dv_total)

    x_min, dv_min = grid.minimum()
    assert dv_min <= report.dv_total
    assert dv_min == pytest.approx(np.nanmin(grid.dv))
    assert x_min[0] < x_min[1] < x_min[2]


def test_grid_skips_unordered_epochs(emj_sequence):
    grid = transfer_cost_grid([8000.0], [7900.0, 7950.0], [8500.0], emj_sequence)
    assert grid.n_feasible == 0
    assert np.isnan(grid.dv).all()
    assert grid.minimum() is None


def test_empty_grid_minimum():
    grid = TransferGrid(np.zeros(2), np.zeros(2), np.zeros(2), np.full((2, 2, 2), np.nan))
    assert grid.minimum() is None


# =============================================================================
# Refinement
# =============================================================================

def test_refine_never_worse(best_candidate, emj_sequence):
    x, report = best_candidate
    refined = refine_minimum(x, emj_sequence, max_iter=60)
    assert refined.report.feasible
    assert refined.dv_total <= report.dv_total + 1e-12
    assert refined.x[0] < refined.x[1] < refined.x[2]
    assert refined.report.turn_angle is not None


def test_search_without_feasible_points(emj_sequence):
    grid, refined = search_transfer([8000.0], [7900.0], [8500.0], emj_sequence)
    assert refined is None
    assert grid.n_feasible == 0
