from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the modforge cache at a per-test directory."""
    cache_dir = tmp_path / "modforge-cache"
    monkeypatch.setenv("MODFORGE_CACHE_DIR", str(cache_dir))
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return cache_dir
