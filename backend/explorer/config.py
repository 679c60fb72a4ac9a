from __future__ import annotations

import os
from pathlib import Path


def _backend_root() -> Path:
    return Path(__file__).resolve().parents[1]


def api_base_url() -> str:
    # Same default as the upstream dev server.
    v = (os.getenv("EXPLORER_API_URL") or "http://localhost:5062/api").strip()
    return v.rstrip("/")


def api_timeout_s() -> float:
    raw = (os.getenv("EXPLORER_API_TIMEOUT_S") or "").strip()
    try:
        v = float(raw) if raw else 10.0
    except ValueError:
        v = 10.0
    return max(0.1, v)


def regions_path() -> Path:
    return Path(
        os.getenv("EXPLORER_REGIONS_PATH")
        or (_backend_root() / "geo" / "regions.yaml")
    )


def toast_duration_s() -> float:
    raw = (os.getenv("EXPLORER_TOAST_DURATION_S") or "").strip()
    try:
        return float(raw) if raw else 5.0
    except ValueError:
        return 5.0


def log_level() -> str:
    return (os.getenv("EXPLORER_LOG_LEVEL") or "INFO").strip().upper()
