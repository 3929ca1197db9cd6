import os
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from .logging import get_logger

log = get_logger("config")

DEFAULT_COVERAGE_DAYS = 7
DEFAULT_SAFETY_STOCK = 5


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running tools from subdirectories (e.g., `src/`) still find
    the repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Return key/value pairs from the nearest .env; does not mutate environment."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = dotenv_values(path)
    env = {k: v.strip() for k, v in values.items() if v is not None}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(key: str, dotenv_dir: str) -> Optional[str]:
    v = os.environ.get(key)
    if v:
        return v.strip()
    v = _read_dotenv(dotenv_dir).get(key)
    return v or None


def _int_setting(key: str, dotenv_dir: str, fallback: int) -> int:
    raw = _lookup(key, dotenv_dir)
    if raw is None:
        return fallback
    try:
        return int(raw)
    except ValueError:
        log.warning(f"Ignoring non-integer {key}={raw!r}; using {fallback}")
        return fallback


def load_db_path(dotenv_dir: str) -> Optional[str]:
    """Return CATALOG_DB_PATH from env or .env, if set."""
    v = _lookup("CATALOG_DB_PATH", dotenv_dir)
    if v:
        log.info("Using CATALOG_DB_PATH override")
    return v


def load_policy_defaults(dotenv_dir: str) -> Tuple[int, int]:
    """Return (coverage_days, safety_stock) with the order form defaults."""
    coverage = _int_setting("REPLENISH_COVERAGE_DAYS", dotenv_dir, DEFAULT_COVERAGE_DAYS)
    safety = _int_setting("REPLENISH_SAFETY_STOCK", dotenv_dir, DEFAULT_SAFETY_STOCK)
    return coverage, safety
