"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PlazaSettings:
    host: str
    port: int
    log_level: str
    seed_demo: bool
    latency_scale: float
    dwell_seconds: float


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def load_settings() -> PlazaSettings:
    port_raw = os.getenv("PLAZA_PORT", "8000")
    return PlazaSettings(
        host=os.getenv("PLAZA_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("PLAZA_LOG_LEVEL", "INFO").upper(),
        seed_demo=_env_flag("PLAZA_SEED_DEMO", "true"),
        latency_scale=float(os.getenv("PLAZA_LATENCY_SCALE", "0")),
        dwell_seconds=float(os.getenv("PLAZA_DWELL_SECONDS", "6.0")),
    )
