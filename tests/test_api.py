"""HTTP API tests against the in-process FastAPI app (analytic ephemeris).

Run: pytest tests/test_api.py
"""

import pytest
from fastapi.testclient import TestClient

from config import settings
from main import app
from mechanics.transforms import mjd2000_to_iso


@pytest.fixture(scope="module")
def client():
    settings.ephemeris_source = "analytic"
    with TestClient(app) as c:
        yield c


# --------------------------------------------------------------------------- #
#  Basic Endpoints
# --------------------------------------------------------------------------- #

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "slingshot"}


def test_bodies(client):
    bodies = client.get("/bodies").json()
    names = {b["name"] for b in bodies}
    assert {"Sun", "Earth", "Mars", "Jupiter"} <= names
    mars = next(b for b in bodies if b["name"] == "Mars")
    assert mars["safe_flyby_radius"] == pytest.approx(3589.5)


# --------------------------------------------------------------------------- #
#  Flyby
# --------------------------------------------------------------------------- #

def test_flyby(client):
    resp = client.post("/flyby", json={
        "v_inf_minus": [3.0, 0.5, 0.2],
        "v_inf_plus": [2.6, 1.6, -0.1],
        "body": "mars",
        "enforce_safe_radius": True,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["body"] == "Mars"
    assert data["rp_km"] > data["r_lim_km"] == pytest.approx(3589.5)
    assert all(e > 1.0 for e in data["e"])


def test_flyby_explicit_mu(client):
    resp = client.post("/flyby", json={
        "v_inf_minus": [3.0, 0.0, 0.0],
        "v_inf_plus": [0.0, 3.0, 0.0],
        "mu": 398600.4418,
    })
    assert resp.status_code == 200
    assert resp.json()["body"] is None


@pytest.mark.parametrize("payload", [
    {"v_inf_minus": [3.0, 0.0, 0.0], "v_inf_plus": [5.0, 0.0, 0.0], "body": "mars"},
    {"v_inf_minus": [0.0, 0.0, 0.0], "v_inf_plus": [5.0, 0.0, 0.0], "body": "mars"},
    {"v_inf_minus": [3.0, 0.0, 0.0], "v_inf_plus": [0.0, 3.0, 0.0]},
    {"v_inf_minus": [3.0, 0.0], "v_inf_plus": [0.0, 3.0, 0.0], "body": "mars"},
])
def test_flyby_rejected(client, payload):
    assert client.post("/flyby", json=payload).status_code == 422


def test_flyby_unknown_body(client):
    resp = client.post("/flyby", json={
        "v_inf_minus": [3.0, 0.0, 0.0], "v_inf_plus": [0.0, 3.0, 0.0], "body": "vulcan",
    })
    assert resp.status_code == 404


# --------------------------------------------------------------------------- #
#  Transfer
# --------------------------------------------------------------------------- #

def _transfer_payload(dep, ga, arr, **extra):
    return {
        "departure": "earth", "flyby": "mars", "arrival": "jupiter",
        "departure_date": dep, "flyby_date": ga, "arrival_date": arr,
        **extra,
    }


def test_transfer_infeasible_is_not_an_error(client):
    resp = client.post("/transfer", json=_transfer_payload("2022-01-01", "2021-06-01", "2024-01-01"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["feasible"] is False
    assert data["dv_total_km_s"] is None
    assert data["turn_angle_rad"] is None
    assert data["bodies"] == ["Earth", "Mars", "Jupiter"]


def test_transfer_feasible(client, emj_feasible):
    x, report = emj_feasible[0]
    resp = client.post("/transfer", json=_transfer_payload(*(mjd2000_to_iso(t) for t in x)))
    assert resp.status_code == 200
    data = resp.json()
    assert data["feasible"] is True
    assert data["dv_total_km_s"] == pytest.approx(report.dv_total)
    assert data["flyby_rlim_km"] == pytest.approx(3589.5)


def test_transfer_detail_total(client, emj_feasible):
    x, _ = emj_feasible[0]
    resp = client.post("/transfer", json=_transfer_payload(*(mjd2000_to_iso(t) for t in x), detail="total"))
    data = resp.json()
    assert data["detail"] == "total"
    assert data["v_inf_km_s"] is None


@pytest.mark.parametrize("extra", [{"detail": "everything"}, {"departure_date": "not-a-date"}])
def test_transfer_bad_request(client, extra):
    payload = _transfer_payload("2020-01-01", "2020-08-01", "2022-08-01")
    payload.update(extra)
    assert client.post("/transfer", json=payload).status_code == 422


# --------------------------------------------------------------------------- #
#  Search
# --------------------------------------------------------------------------- #

def test_search_rejects_reversed_window(client):
    resp = client.post("/transfer/search", json={
        "departure": "earth", "flyby": "mars", "arrival": "jupiter",
        "dep_start": "2021-01-01", "dep_end": "2020-01-01",
    })
    assert resp.status_code == 422


def test_search_rejects_bad_tof_bounds(client):
    resp = client.post("/transfer/search", json={
        "departure": "earth", "flyby": "mars", "arrival": "jupiter",
        "dep_start": "2020-01-01", "dep_end": "2021-01-01",
        "tof1_min_days": 400, "tof1_max_days": 100,
    })
    assert resp.status_code == 422


def test_search_unknown_body(client):
    resp = client.post("/transfer/search", json={
        "departure": "earth", "flyby": "vulcan", "arrival": "jupiter",
        "dep_start": "2020-01-01", "dep_end": "2021-01-01",
    })
    assert resp.status_code == 404
