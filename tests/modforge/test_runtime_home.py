"""Tests for modforge.runtime.home cache directory resolution."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from modforge.runtime import get_cache_dir


class TestGetCacheDir:
    def test_env_var_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODFORGE_CACHE_DIR", str(tmp_path / "custom"))
        assert get_cache_dir() == tmp_path / "custom"

    def test_platform_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MODFORGE_CACHE_DIR", raising=False)
        with patch("modforge.runtime.home.user_cache_dir", return_value="/cache/modforge") as mock_dir:
            assert get_cache_dir() == Path("/cache/modforge")
        mock_dir.assert_called_once_with("modforge")

    def test_empty_env_var_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODFORGE_CACHE_DIR", "")
        with patch("modforge.runtime.home.user_cache_dir", return_value="/cache/modforge"):
            assert get_cache_dir() == Path("/cache/modforge")
