from __future__ import annotations

import logging
import os
from pathlib import Path

from platformdirs import user_config_dir as _uc

logger = logging.getLogger(__name__)

APP_NAME_ENV = "PREFSYNC_APP_NAME"
STORAGE_ENV = "PREFSYNC_STORAGE"
POLL_INTERVAL_ENV = "PREFSYNC_POLL_INTERVAL"

DEFAULT_POLL_INTERVAL = 1.0
STORAGE_FILENAME = "prefs.json"

# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def _app_name(default: str) -> str:
    return os.getenv(APP_NAME_ENV, default)


def user_config_dir(app_name: str = "prefsync") -> Path:
    app = _app_name(app_name)
    return Path(_uc(appname=app)).resolve()


def default_storage_path(app_name: str = "prefsync") -> Path:
    """Return the storage file, honouring ``PREFSYNC_STORAGE``."""
    env = os.getenv(STORAGE_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return user_config_dir(app_name) / STORAGE_FILENAME

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

def poll_interval() -> float:
    raw = os.getenv(POLL_INTERVAL_ENV)
    if raw is None or raw.strip() == "":
        return DEFAULT_POLL_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", POLL_INTERVAL_ENV, raw)
        return DEFAULT_POLL_INTERVAL
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", POLL_INTERVAL_ENV, raw)
        return DEFAULT_POLL_INTERVAL
    return value
