from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Flyby pericenter root-finder
    flyby_rp_rtol: float = 1e-14
    flyby_angle_tol: float = 1e-8  # max residual accepted at the root (rad)
    flyby_max_iter: int = 200
    flyby_max_bracket_steps: int = 200
    flyby_node_tol: float = 1e-12  # |K x u| below this -> equatorial flyby plane

    # Lambert solver
    lambert_tol: float = 1e-10
    lambert_max_iter: int = 200

    # Ephemeris
    ephemeris_source: Literal["analytic", "horizons"] = "analytic"
    ephemeris_start: str = "2000-01-01"
    ephemeris_end: str = "2050-01-01"
    ephemeris_step_days: int = 1
    ephemeris_cache_dir: Path = Path("data/cache")

    # Search driver
    search_max_iter: int = 400

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
