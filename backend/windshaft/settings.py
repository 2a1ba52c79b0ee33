from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from windshaft.config import maps_config_path


class MapsClientConfig(BaseModel):
    """
    Account-level Maps API settings, loaded from `config/maps.yaml`.
    """

    userName: str
    # Must contain `{user}`; the scheme decides http vs https tile hosts.
    urlTemplate: str = Field(default="https://{user}.carto.com", pattern=r"\{user\}")
    apiKey: str | None = None
    authToken: str | None = None
    statTag: str | None = None
    # Optional overrides of the env-level defaults.
    instantiationLimit: int | None = Field(default=None, ge=1)
    timeoutS: float | None = Field(default=None, gt=0.0)


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid maps config yaml root: {path}")
    return data


def load_maps_config(path: Path | None = None) -> MapsClientConfig:
    p = Path(path) if path is not None else maps_config_path()
    return _load_cached(str(p.resolve()))


@lru_cache(maxsize=4)
def _load_cached(path: str) -> MapsClientConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Maps config not found: {p}")
    return MapsClientConfig.model_validate(_load_yaml(p))


def clear_maps_config_cache() -> None:
    _load_cached.cache_clear()
