"""Service configuration.

Loads from environment variables (prefix ``GROSSPROFIT_``) and a ``.env``
file. Domain settings (markup defaults, budgets) are not here: they travel
with each calculation request as ``AppSettings``.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ServiceSettings(BaseSettings):
    # ----- Server -----
    host: str = Field(default="127.0.0.1", description="Bind host.")
    port: int = Field(default=8000, description="Bind port.")
    reload: bool = Field(default=False, description="uvicorn auto-reload (dev only).")

    # ----- Logging -----
    log_level: str = Field(default="INFO", description="Root log level for the grossprofit loggers.")

    # ----- Storage -----
    data_dir: str | None = Field(
        default=None,
        description="Directory for saved results. Defaults to <repo>/data.",
    )

    # ----- Calculation -----
    max_workers: int = Field(
        default=1,
        description="Threads for the per-store stage; 1 runs stores inline.",
    )
    cache_entries: int = Field(default=100, description="Per-store result cache size.")
    job_history: int = Field(
        default=200,
        description="Finished background jobs kept for status polling.",
    )

    model_config = {
        "env_prefix": "GROSSPROFIT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> ServiceSettings:
    """Get cached settings singleton."""
    return ServiceSettings()


def configure_logging(level: str | int = "INFO") -> None:
    """Attach one stream handler to the ``grossprofit`` logger tree."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger("grossprofit")
    root.setLevel(level)
    if not any(getattr(h, "_grossprofit", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._grossprofit = True  # type: ignore[attr-defined]
        root.addHandler(handler)
