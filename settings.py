from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Storage; empty means <project root>/data
    data_dir: str

    # Reset / reseed suppression
    clean_marker_ttl_seconds: float
    reload_delay_seconds: float
    seed_on_start: bool

    # Logging
    log_level: str
    debug_log_requests: bool


def get_settings() -> Settings:
    data_dir = os.getenv("LEDGER_DATA_DIR", "").strip()

    # Long enough to cover the reload that follows a reset.
    clean_marker_ttl_seconds = max(0.0, _env_float("LEDGER_CLEAN_MARKER_TTL", 60.0))
    reload_delay_seconds = max(0.0, _env_float("LEDGER_RELOAD_DELAY", 2.0))
    seed_on_start = _env_bool("LEDGER_SEED_ON_START", True)

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    debug_log_requests = _env_bool("DEBUG_LOG_REQUESTS", False)

    return Settings(
        data_dir=data_dir,
        clean_marker_ttl_seconds=clean_marker_ttl_seconds,
        reload_delay_seconds=reload_delay_seconds,
        seed_on_start=seed_on_start,
        log_level=log_level,
        debug_log_requests=debug_log_requests,
    )
