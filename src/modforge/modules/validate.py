"""Checks run on resolved module manifests."""

from __future__ import annotations

from typing import Mapping

from modforge.configuration.manifest import ModuleManifest
from modforge.errors import ManifestError, ToolVersionMismatch
from modforge.semver import Constraint, InvalidConstraint, InvalidVersion, parse_tolerant


def validate_tool_version(manifests: Mapping[str, ModuleManifest], tool_version: str) -> None:
    """Ensure *tool_version* satisfies every module's ``modforgeVersion`` constraint.

    Raises:
        ManifestError: If the tool version or a constraint does not parse.
        ToolVersionMismatch: If a module requires another modforge version.
    """
    try:
        current = parse_tolerant(tool_version)
    except InvalidVersion as exc:
        raise ManifestError(f"failed to parse modforge version {tool_version!r}: {exc}") from exc

    for name in sorted(manifests):
        required = manifests[name].modforge_version
        if not required:
            continue
        try:
            constraint = Constraint.parse(required)
        except InvalidConstraint as exc:
            raise ManifestError(
                f"failed to parse modforgeVersion constraint {required!r} of module {name}: {exc}"
            ) from exc

        if not constraint.check(current):
            raise ToolVersionMismatch(name, tool_version, required)
