"""HTTP REST endpoints for the Slingshot API.

- /health           — Health check
- /bodies           — List supported bodies
- /flyby            — Solve a powered gravity assist from v-infinity vectors
- /transfer         — Delta-v of a departure -> flyby -> arrival transfer
- /transfer/search  — Epoch grid search + local refinement
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import numpy as np
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from ephemeris.analytic import EphemerisProvider
from ephemeris.bodies import ALL_BODIES, CelestialBody, resolve_body
from mechanics.flyby import InfeasibleGeometry, InvalidInput, flyby_solution_to_dict, solve_powered_flyby
from mechanics.transfer import DetailLevel, report_to_dict
from mechanics.transforms import iso_to_mjd2000, mjd2000_to_iso
from optimizer.objective import FlybySequence, search_transfer

logger = logging.getLogger("slingshot.api")
router = APIRouter()


# --------------------------------------------------------------------------- #
#  Shared validators
# --------------------------------------------------------------------------- #

def _validate_iso_date(v: str) -> str:
    """Validate that a string is a parseable ISO date."""
    try:
        datetime.fromisoformat(v)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid ISO date: '{v}'. Expected format: YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS")
    return v


def _validate_vec3(v: list[float]) -> list[float]:
    if len(v) != 3:
        raise ValueError(f"Expected a 3-component vector, got {len(v)} components")
    return v


# --------------------------------------------------------------------------- #
#  Pydantic models for request/response
# --------------------------------------------------------------------------- #

class BodyOut(BaseModel):
    naif_id: int
    name: str
    gm: float
    radius: float
    safe_flyby_radius: float


class FlybyRequest(BaseModel):
    v_inf_minus: list[float] = Field(description="Incoming excess velocity (km/s), 3 components")
    v_inf_plus: list[float] = Field(description="Outgoing excess velocity (km/s), 3 components")
    body: str | None = Field(default=None, description="Flyby body name or NAIF ID, supplies mu")
    mu: float | None = Field(default=None, gt=0, description="Explicit gravitational parameter (km^3/s^2)")
    r_lim: float | None = Field(default=None, ge=0, description="Minimum pericenter radius (km)")
    enforce_safe_radius: bool = Field(default=False, description="Use the body's safe radius as r_lim")

    @field_validator("v_inf_minus", "v_inf_plus")
    @classmethod
    def check_vec3(cls, v: list[float]) -> list[float]:
        return _validate_vec3(v)


class TransferRequest(BaseModel):
    departure: str = Field(description="Departure body name or NAIF ID, e.g. 'earth'")
    flyby: str = Field(description="Flyby body name or NAIF ID, e.g. 'mars'")
    arrival: str = Field(description="Arrival body name or NAIF ID, e.g. 'jupiter'")
    departure_date: str
    flyby_date: str
    arrival_date: str
    enforce_safe_radius: bool = True
    detail: str = Field(default="full", description="total, excess_velocities, lambert_velocities, components or full")

    @field_validator("departure_date", "flyby_date", "arrival_date")
    @classmethod
    def check_iso_date(cls, v: str) -> str:
        return _validate_iso_date(v)

    @field_validator("detail")
    @classmethod
    def check_detail(cls, v: str) -> str:
        if v.upper() not in DetailLevel.__members__:
            raise ValueError(f"detail must be one of {[m.lower() for m in DetailLevel.__members__]}, got '{v}'")
        return v


class SearchRequest(BaseModel):
    departure: str
    flyby: str
    arrival: str
    dep_start: str = Field(description="Departure window start, ISO date")
    dep_end: str = Field(description="Departure window end, ISO date")
    tof1_min_days: float = Field(default=100, ge=1, description="Departure -> flyby time of flight")
    tof1_max_days: float = Field(default=400, ge=1)
    tof2_min_days: float = Field(default=200, ge=1, description="Flyby -> arrival time of flight")
    tof2_max_days: float = Field(default=1500, ge=1)
    dep_steps: int = Field(default=20, ge=2, le=200)
    tof_steps: int = Field(default=10, ge=2, le=100)
    enforce_safe_radius: bool = True

    @field_validator("dep_start", "dep_end")
    @classmethod
    def check_iso_date(cls, v: str) -> str:
        return _validate_iso_date(v)


# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #

def _resolve_body(identifier: str) -> CelestialBody:
    """Resolve a body by name or NAIF ID string."""
    try:
        return resolve_body(identifier)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown body: {identifier}")


def _get_ephemeris(request: Request, *bodies: CelestialBody) -> EphemerisProvider:
    """Get the ephemeris provider from the app state, checking body coverage."""
    ephemeris = request.app.state.ephemeris
    for body in bodies:
        if body.naif_id not in ephemeris:
            raise HTTPException(status_code=503, detail=f"Ephemeris not loaded for {body.name}")
    return ephemeris


def _safe_iso_to_mjd2000(iso_date: str) -> float:
    try:
        return iso_to_mjd2000(iso_date)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=422,
            detail=f"Invalid date format: '{iso_date}'. Expected ISO format: YYYY-MM-DD",
        )


# --------------------------------------------------------------------------- #
#  Endpoints
# --------------------------------------------------------------------------- #

@router.get("/health")
async def health():
    return {"status": "ok", "service": "slingshot"}


@router.get("/bodies", response_model=list[BodyOut])
async def list_bodies():
    """List all supported celestial bodies."""
    return [
        BodyOut(
            naif_id=b.naif_id,
            name=b.name,
            gm=b.gm,
            radius=b.radius,
            safe_flyby_radius=b.safe_flyby_radius,
        )
        for b in ALL_BODIES
    ]


@router.post("/flyby")
async def powered_flyby(req: FlybyRequest):
    """Solve the powered gravity assist joining two excess velocities."""
    body = _resolve_body(req.body) if req.body is not None else None
    if req.mu is not None:
        mu = req.mu
    elif body is not None:
        mu = body.gm
    else:
        raise HTTPException(status_code=422, detail="Either 'body' or 'mu' is required")

    r_lim = req.r_lim
    if req.enforce_safe_radius:
        if body is None:
            raise HTTPException(status_code=422, detail="enforce_safe_radius requires 'body'")
        r_lim = max(r_lim or 0.0, body.safe_flyby_radius)

    try:
        sol = solve_powered_flyby(np.array(req.v_inf_minus), np.array(req.v_inf_plus), mu, r_lim)
    except (InfeasibleGeometry, InvalidInput) as e:
        raise HTTPException(status_code=422, detail=f"Infeasible flyby: {e}")

    out = flyby_solution_to_dict(sol)
    out["body"] = body.name if body is not None else None
    out["mu"] = mu
    out["r_lim_km"] = r_lim
    return out


@router.post("/transfer")
async def transfer_cost(req: TransferRequest, request: Request):
    """Evaluate a departure -> flyby -> arrival transfer.

    Infeasible combinations are not errors: the report comes back with
    feasible=false and null values.
    """
    sequence = FlybySequence(
        departure=_resolve_body(req.departure),
        flyby=_resolve_body(req.flyby),
        arrival=_resolve_body(req.arrival),
        enforce_safe_radius=req.enforce_safe_radius,
    )
    ephemeris = _get_ephemeris(request, sequence.departure, sequence.flyby, sequence.arrival)

    dep = _safe_iso_to_mjd2000(req.departure_date)
    ga = _safe_iso_to_mjd2000(req.flyby_date)
    arr = _safe_iso_to_mjd2000(req.arrival_date)

    report = sequence.evaluate(dep, ga, arr, detail=DetailLevel[req.detail.upper()], ephemeris=ephemeris)

    out = report_to_dict(report)
    out.update({
        "bodies": [sequence.departure.name, sequence.flyby.name, sequence.arrival.name],
        "epochs_mjd2000": [dep, ga, arr],
        "flyby_rlim_km": sequence.flyby_rlim,
    })
    return out


@router.post("/transfer/search")
async def search(req: SearchRequest, request: Request):
    """Grid search over (departure, flyby, arrival) epochs, then refine the best point."""
    sequence = FlybySequence(
        departure=_resolve_body(req.departure),
        flyby=_resolve_body(req.flyby),
        arrival=_resolve_body(req.arrival),
        enforce_safe_radius=req.enforce_safe_radius,
    )
    ephemeris = _get_ephemeris(request, sequence.departure, sequence.flyby, sequence.arrival)

    dep_start = _safe_iso_to_mjd2000(req.dep_start)
    dep_end = _safe_iso_to_mjd2000(req.dep_end)

    if dep_start >= dep_end:
        raise HTTPException(status_code=422, detail="dep_start must be before dep_end")
    if req.tof1_min_days >= req.tof1_max_days or req.tof2_min_days >= req.tof2_max_days:
        raise HTTPException(status_code=422, detail="Time-of-flight minimum must be less than maximum")

    departures = np.linspace(dep_start, dep_end, req.dep_steps)
    flybys = np.linspace(dep_start + req.tof1_min_days, dep_end + req.tof1_max_days, req.tof_steps)
    arrivals = np.linspace(
        dep_start + req.tof1_min_days + req.tof2_min_days,
        dep_end + req.tof1_max_days + req.tof2_max_days,
        req.tof_steps,
    )

    # CPU-bound; keep the event loop free
    grid, refined = await asyncio.to_thread(
        search_transfer, departures, flybys, arrivals, sequence, ephemeris,
    )

    if refined is None:
        raise HTTPException(status_code=422, detail="No feasible transfer in the search window")

    out = report_to_dict(refined.report)
    out.update({
        "bodies": [sequence.departure.name, sequence.flyby.name, sequence.arrival.name],
        "epochs_mjd2000": refined.x.tolist(),
        "epochs_iso": [mjd2000_to_iso(t) for t in refined.x],
        "iterations": refined.iterations,
        "grid_points": int(grid.dv.size),
        "grid_feasible": grid.n_feasible,
    })
    return out
