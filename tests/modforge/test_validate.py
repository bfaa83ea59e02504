"""Tests for module tool-version requirements."""

from __future__ import annotations

import pytest

from modforge.errors import ManifestError, ToolVersionMismatch
from modforge.modules.testing import manifest
from modforge.modules.validate import validate_tool_version

MODULE = "example.com/modforge-test"


class TestValidateToolVersion:
    def test_satisfied(self) -> None:
        validate_tool_version({MODULE: manifest(MODULE, modforge_version=">=0.4.0")}, "v0.4.0")

    def test_modules_without_requirement_are_ignored(self) -> None:
        validate_tool_version({MODULE: manifest(MODULE)}, "v0.1.0")

    def test_mismatch(self) -> None:
        with pytest.raises(ToolVersionMismatch) as excinfo:
            validate_tool_version({MODULE: manifest(MODULE, modforge_version="^2.0.0")}, "v1.10.0")

        assert str(excinfo.value) == (
            "modforge version v1.10.0 does not match the version constraint (^2.0.0) "
            "for example.com/modforge-test"
        )

    def test_invalid_tool_version(self) -> None:
        with pytest.raises(ManifestError, match="failed to parse modforge version"):
            validate_tool_version({}, "not-a-version")

    def test_invalid_constraint(self) -> None:
        with pytest.raises(ManifestError, match="modforgeVersion constraint"):
            validate_tool_version({MODULE: manifest(MODULE, modforge_version="soon")}, "v0.4.0")
