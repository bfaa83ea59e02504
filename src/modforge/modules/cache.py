"""On-disk cache of the last version resolved for a (URI, channel) pair.

Each entry is a ``version.json`` file under
``<cache dir>/module_version/<sha256 of uri and channel>/``. An entry is
fresh while its modification time is younger than MODULE_CACHE_TTL.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable

from modforge.modules.models import Version
from modforge.runtime.home import get_cache_dir

logger = logging.getLogger(__name__)

MODULE_CACHE_TTL = timedelta(minutes=30)

_CACHE_TYPE = "module_version"
_CACHE_FILE = "version.json"


def cache_key(uri: str, channel: str) -> str:
    """Return a filesystem-safe key for *uri* on *channel*."""
    return hashlib.sha256(f"{uri}\0{channel}".encode("utf-8")).hexdigest()


class ResolutionCache:
    """Reads and writes cached version resolutions."""

    def __init__(
        self,
        root: Path | None = None,
        ttl: timedelta = MODULE_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self.root = root if root is not None else get_cache_dir()
        self.ttl = ttl
        self._clock = clock

    def path_for(self, uri: str, channel: str) -> Path:
        return self.root / _CACHE_TYPE / cache_key(uri, channel) / _CACHE_FILE

    def is_fresh(self, path: Path) -> bool:
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return False
        return self._clock() - mtime <= self.ttl.total_seconds()

    def get(self, uri: str, channel: str) -> Version | None:
        """Return the cached version, or None if missing, stale, or unreadable JSON.

        Raises:
            OSError: If a fresh cache file exists but cannot be read.
        """
        path = self.path_for(uri, channel)
        if not self.is_fresh(path):
            return None

        raw = path.read_text(encoding="utf-8")
        try:
            return Version.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring corrupt version cache %s: %s", path, exc)
            return None

    def put(self, uri: str, channel: str, version: Version) -> Path:
        """Persist *version* for *uri* on *channel*.

        The file is written to a temporary name and renamed into place so
        concurrent readers never observe a partial write.

        Raises:
            OSError: If the cache directory or file cannot be written.
        """
        path = self.path_for(uri, channel)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".version_", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(version.to_dict(), handle)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
        return path
