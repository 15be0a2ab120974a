from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from api.routes_http import router as http_router
from ephemeris.analytic import ANALYTIC_EPHEMERIS
from ephemeris.spline_cache import EphemerisCache

logger = logging.getLogger("slingshot")
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: select (and warm, if tabulated) the ephemeris provider."""
    if settings.ephemeris_source == "horizons":
        cache = EphemerisCache()
        logger.info("Warming Horizons ephemeris cache ...")
        await cache.warm(
            start=settings.ephemeris_start,
            end=settings.ephemeris_end,
            step_days=settings.ephemeris_step_days,
        )
        logger.info("Ephemeris cache ready — %d bodies loaded", len(cache))
        app.state.ephemeris = cache
    else:
        logger.info("Using analytic mean-element ephemeris")
        app.state.ephemeris = ANALYTIC_EPHEMERIS
    yield
    logger.info("Shutting down Slingshot")


app = FastAPI(
    title="Slingshot — Powered Gravity-Assist Transfer Designer",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(http_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.reload)
