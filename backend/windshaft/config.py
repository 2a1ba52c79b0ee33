from __future__ import annotations

import os
from pathlib import Path

# The max number of times the same map can be instantiated.
MAP_INSTANTIATION_LIMIT = 3
TRACKER_MAX_FINGERPRINTS = 64
MAPS_API_BASE_URL = "api/v1/map"


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def maps_api_base_url() -> str:
    return (os.getenv("WINDSHAFT_MAPS_API_BASE_URL") or MAPS_API_BASE_URL).strip("/")


def instantiation_limit() -> int:
    return max(1, _env_int("WINDSHAFT_INSTANTIATION_LIMIT", MAP_INSTANTIATION_LIMIT))


def tracker_max_fingerprints() -> int:
    return max(1, _env_int("WINDSHAFT_TRACKER_MAX_FINGERPRINTS", TRACKER_MAX_FINGERPRINTS))


def backend_timeout_s() -> float:
    raw = (os.getenv("WINDSHAFT_TIMEOUT_S") or "30").strip()
    return float(raw)


def maps_config_path() -> Path:
    return Path(
        os.getenv("WINDSHAFT_CONFIG_PATH") or (_repo_root() / "config" / "maps.yaml")
    )
