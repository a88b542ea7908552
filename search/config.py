from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class SearchSettings(BaseModel):
    """
    Tunables for the search core.

    Resolution order: defaults -> YAML file (`MAPSEARCH_CONFIG`) -> env overrides.
    """

    pageSize: int = Field(default=20, ge=1, le=500)
    maxRecentSearches: int = Field(default=20, ge=1, le=1_000)
    recentSearchMaxAgeDays: float = Field(default=30.0, gt=0.0)
    # Rounding of viewport coordinates in log lines.
    coordinateDecimals: int = Field(default=4, ge=0, le=10)


_ENV_OVERRIDES = {
    "MAPSEARCH_PAGE_SIZE": "pageSize",
    "MAPSEARCH_MAX_RECENT_SEARCHES": "maxRecentSearches",
    "MAPSEARCH_RECENT_MAX_AGE_DAYS": "recentSearchMaxAgeDays",
    "MAPSEARCH_COORDINATE_DECIMALS": "coordinateDecimals",
}


def config_path() -> Path | None:
    raw = (os.getenv("MAPSEARCH_CONFIG") or "").strip()
    return Path(raw) if raw else None


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid search config yaml root: {path}")
    # Allow the settings to live under a `search:` section of a larger app config.
    section = data.get("search", data)
    if not isinstance(section, dict):
        raise ValueError(f"Invalid `search` section in config: {path}")
    return section


def _env_overrides() -> dict[str, Any]:
    out: dict[str, Any] = {}
    for env_name, key in _ENV_OVERRIDES.items():
        raw = (os.getenv(env_name) or "").strip()
        if raw:
            out[key] = raw
    return out


@lru_cache(maxsize=1)
def get_settings() -> SearchSettings:
    data: dict[str, Any] = {}
    path = config_path()
    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"MAPSEARCH_CONFIG points to a missing file: {path}")
        data.update(_load_yaml(path))
    data.update(_env_overrides())
    return SearchSettings.model_validate(data)


def clear_settings_cache() -> None:
    """
    Forget the resolved settings so the next `get_settings()` re-reads file and env.
    """
    get_settings.cache_clear()
