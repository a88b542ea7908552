from __future__ import annotations

import logging
import os


def log_level() -> int:
    v = (os.getenv("MAPSEARCH_LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(v)
    return level if isinstance(level, int) else logging.INFO


def debug_enabled() -> bool:
    v = (os.getenv("MAPSEARCH_DEBUG") or "0").strip().lower()
    return v not in {"", "0", "false", "no", "off"}
