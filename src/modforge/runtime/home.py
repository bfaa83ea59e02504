"""Location of the process-wide modforge cache directory."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_cache_dir


def get_cache_dir() -> Path:
    """Return the directory modforge caches module data in.

    Resolution order:
    1. MODFORGE_CACHE_DIR environment variable (all platforms)
    2. The platform user cache directory (via platformdirs), e.g.
       ``~/.cache/modforge`` on Linux

    Returns:
        Path: Absolute path to the cache directory. It may not exist yet.
    """
    if env_dir := os.environ.get("MODFORGE_CACHE_DIR"):
        return Path(env_dir)

    return Path(user_cache_dir("modforge"))

