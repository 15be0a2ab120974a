"""Powered gravity assist solver: pericenter root-finding, hyperbola
elements, flyby plane orientation and failure modes."""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ephemeris.bodies import MARS
from mechanics.flyby import (
    InfeasibleGeometry,
    InvalidInput,
    branch_turn_angle,
    flyby_solution_to_dict,
    hyperbola_eccentricity,
    hyperbola_elements,
    rotate_rodrigues,
    solve_pericenter_radius,
    solve_powered_flyby,
    turn_angle_between,
    turn_angle_residual,
)

MU_MARS = MARS.gm


def _planar_pair(v_in: float, v_out: float, turn: float, axis: str = "z"):
    """Excess velocities separated by `turn`, in the plane normal to `axis`."""
    if axis == "z":
        return (np.array([v_in, 0.0, 0.0]),
                v_out * np.array([math.cos(turn), math.sin(turn), 0.0]))
    # plane normal to +x
    return (np.array([0.0, v_in, 0.0]),
            v_out * np.array([0.0, math.cos(turn), math.sin(turn)]))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def v_pair():
    """A generic 3D pair with a ~0.4 rad turn and unequal speeds."""
    return np.array([3.0, 0.5, 0.2]), np.array([2.6, 1.6, -0.1])


@pytest.fixture
def solution(v_pair):
    return solve_powered_flyby(*v_pair, MU_MARS)


# =============================================================================
# Two-body relations
# =============================================================================

def test_hyperbola_elements():
    a, e = hyperbola_elements(MU_MARS, 3.0, 5000.0)
    assert a == pytest.approx(-MU_MARS / 9.0)
    assert e == pytest.approx(1.0 + 5000.0 * 9.0 / MU_MARS)
    # rp = a (1 - e)
    assert a * (1.0 - e) == pytest.approx(5000.0)


def test_pericenter_monotonicity():
    """At fixed rp a faster branch is more eccentric and turns less."""
    rp = 6000.0
    speeds = [1.0, 2.0, 4.0, 8.0]
    ecc = [hyperbola_eccentricity(rp, v, MU_MARS) for v in speeds]
    turns = [branch_turn_angle(rp, v, MU_MARS) for v in speeds]
    assert all(e2 > e1 for e1, e2 in zip(ecc, ecc[1:]))
    assert all(t2 < t1 for t1, t2 in zip(turns, turns[1:]))


def test_residual_is_positive_off_domain(v_pair):
    residual = turn_angle_residual(*v_pair, MU_MARS)
    assert residual(0.0) == 1.0
    assert residual(-100.0) == 1.0
    assert residual(1e-3) > 0.0
    assert residual(1e12) < 0.0


def test_rotate_rodrigues_quarter_turn():
    out = rotate_rodrigues(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]), math.pi / 2)
    assert_allclose(out, [0.0, 1.0, 0.0], atol=1e-15)


# =============================================================================
# Solver properties
# =============================================================================

def test_turn_angle_consistency(solution, v_pair):
    assert solution.turn_angle == pytest.approx(turn_angle_between(*v_pair))
    d_minus, d_plus = solution.branch_turn_angles
    assert 0.5 * (d_minus + d_plus) == pytest.approx(solution.turn_angle, abs=1e-8)


def test_eccentricities_hyperbolic(solution):
    assert solution.rp > 0.0
    assert all(e > 1.0 for e in solution.e)
    assert all(a < 0.0 for a in solution.a)


def test_pericenter_speeds_and_impulse(solution, v_pair):
    v_minus, v_plus = (np.linalg.norm(v) for v in v_pair)
    vp_minus, vp_plus = solution.v_pericenter
    # vis-viva: v_p^2 = v_inf^2 + 2 mu / rp
    assert vp_minus ** 2 == pytest.approx(v_minus ** 2 + 2.0 * MU_MARS / solution.rp)
    assert vp_plus ** 2 == pytest.approx(v_plus ** 2 + 2.0 * MU_MARS / solution.rp)
    assert solution.dv_pericenter == pytest.approx(abs(vp_plus - vp_minus))
    assert solution.dv == pytest.approx(np.linalg.norm(v_pair[1] - v_pair[0]))


def test_feasibility_gate(solution, v_pair):
    rp = solution.rp

    below = solve_powered_flyby(*v_pair, MU_MARS, r_lim=0.5 * rp)
    assert below.rp == pytest.approx(rp)

    with pytest.raises(InfeasibleGeometry):
        solve_powered_flyby(*v_pair, MU_MARS, r_lim=2.0 * rp)
    with pytest.raises(InfeasibleGeometry):
        solve_powered_flyby(*v_pair, MU_MARS, r_lim=rp)


def test_swapping_branches(solution, v_pair):
    swapped = solve_powered_flyby(v_pair[1], v_pair[0], MU_MARS)
    assert swapped.turn_angle == pytest.approx(solution.turn_angle)
    assert swapped.rp == pytest.approx(solution.rp)
    assert swapped.e == pytest.approx(solution.e[::-1])
    assert swapped.dv_pericenter == pytest.approx(solution.dv_pericenter)
    assert swapped.dv_pericenter_signed == pytest.approx(-solution.dv_pericenter_signed)


def test_equal_speeds_need_no_impulse():
    v_in, v_out = _planar_pair(4.0, 4.0, 0.3)
    sol = solve_powered_flyby(v_in, v_out, MU_MARS)
    assert sol.e[0] == pytest.approx(sol.e[1])
    assert sol.dv_pericenter == pytest.approx(0.0, abs=1e-12)
    # single hyperbola: sin(turn/2) = 1/e
    assert math.sin(0.15) == pytest.approx(1.0 / sol.e[0])


# =============================================================================
# Flyby plane orientation
# =============================================================================

def test_equatorial_plane_collapses_angles():
    v_in, v_out = _planar_pair(3.0, 3.5, 0.3)
    sol = solve_powered_flyby(v_in, v_out, MU_MARS)
    assert sol.inclination == pytest.approx(0.0, abs=1e-12)
    assert sol.raan == 0.0
    assert sol.arg_periapsis == 0.0
    assert_allclose(sol.rotation_axis, [0.0, 0.0, 1.0])


def test_apse_line_points_to_pericenter():
    v_in, v_out = _planar_pair(3.0, 3.0, 0.3)
    sol = solve_powered_flyby(v_in, v_out, MU_MARS)
    d_minus = sol.branch_turn_angles[0]
    # velocity at pericenter is the incoming direction turned by d-/2
    v_peri_dir = np.array([math.cos(d_minus / 2), math.sin(d_minus / 2), 0.0])
    assert np.dot(sol.apse_line, v_peri_dir) == pytest.approx(0.0, abs=1e-12)
    # counter-clockwise turn -> pericenter on the -y side
    assert sol.apse_line[1] < 0.0
    # h = r x v along the rotation axis
    assert np.cross(sol.apse_line, v_peri_dir)[2] > 0.0


def test_polar_plane_orientation():
    v_in, v_out = _planar_pair(3.0, 3.2, 0.3, axis="x")
    sol = solve_powered_flyby(v_in, v_out, MU_MARS)
    assert sol.inclination == pytest.approx(math.pi / 2)
    assert sol.raan == pytest.approx(math.pi / 2)
    assert 0.0 <= sol.arg_periapsis < 2.0 * math.pi


@pytest.mark.parametrize("tilt", [1e-3, 1e-7, 1e-10, math.pi / 2 - 1e-9])
def test_orientation_finite_near_singular_inclinations(tilt):
    """RAAN and argument of periapsis stay defined as i -> 0 and i -> pi/2."""
    v_in = np.array([3.0, 0.0, 0.0])
    # flyby plane spanned by x and (0, cos tilt, sin tilt): inclination = tilt
    v_out = 3.2 * np.array([math.cos(0.3), math.sin(0.3) * math.cos(tilt), math.sin(0.3) * math.sin(tilt)])
    sol = solve_powered_flyby(v_in, v_out, MU_MARS)
    assert sol.inclination == pytest.approx(tilt, abs=1e-6)
    for angle in (sol.inclination, sol.raan, sol.arg_periapsis):
        assert math.isfinite(angle)
        assert 0.0 <= angle <= 2.0 * math.pi


def test_solution_to_dict(solution):
    out = flyby_solution_to_dict(solution)
    assert out["rp_km"] == solution.rp
    assert len(out["e"]) == 2
    assert len(out["apse_line"]) == 3


# =============================================================================
# Failure modes
# =============================================================================

def test_zero_deflection_is_infeasible():
    with pytest.raises(InfeasibleGeometry):
        solve_powered_flyby(np.array([3.0, 0.0, 0.0]), np.array([5.0, 0.0, 0.0]), MU_MARS)


def test_near_zero_deflection_terminates():
    v = np.array([1.0, 2.0, 3.0])
    try:
        sol = solve_powered_flyby(v, 2.0 * v, MU_MARS)
    except InfeasibleGeometry:
        return
    # rounding left a tiny turn angle: the root runs off to a huge radius
    assert sol.rp > 1e6 * MU_MARS / np.dot(2.0 * v, 2.0 * v)


def test_anti_parallel_is_infeasible():
    with pytest.raises(InfeasibleGeometry):
        solve_powered_flyby(np.array([3.0, 0.0, 0.0]), np.array([-3.0, 0.0, 0.0]), MU_MARS)


def test_pericenter_radius_solver_rejects_zero_turn():
    with pytest.raises(InfeasibleGeometry):
        solve_pericenter_radius(np.array([0.0, 2.0, 0.0]), np.array([0.0, 7.0, 0.0]), MU_MARS)


@pytest.mark.parametrize("v_in, v_out, mu", [
    (np.zeros(3), np.array([1.0, 0.0, 0.0]), MU_MARS),
    (np.array([1.0, 0.0, 0.0]), np.zeros(3), MU_MARS),
    (np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]), 0.0),
    (np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]), -5.0),
])
def test_invalid_input(v_in, v_out, mu):
    with pytest.raises(InvalidInput):
        solve_powered_flyby(v_in, v_out, mu)
