import sys
from pathlib import Path

import pytest


# Ensure the repo root is on sys.path so tests can import local packages
# like `search.*`, `panels.*` and `geo.*` without an install.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    from search.config import clear_settings_cache

    for name in (
        "MAPSEARCH_CONFIG",
        "MAPSEARCH_PAGE_SIZE",
        "MAPSEARCH_MAX_RECENT_SEARCHES",
        "MAPSEARCH_RECENT_MAX_AGE_DAYS",
        "MAPSEARCH_COORDINATE_DECIMALS",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
