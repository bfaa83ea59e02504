"""Exception hierarchy for module resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .modules.models import Resolution


class ModforgeError(Exception):
    """Base exception for modforge errors."""


class ManifestError(ModforgeError):
    """A manifest, lockfile, or version constraint could not be parsed."""


class ModuleResolutionError(ModforgeError):
    """Base exception for failures while choosing module versions."""


def format_history(history: Sequence["Resolution"]) -> str:
    """Render request history as an indented tree, one line per request.

    Each line reads ``└─ <parent> wants <constraint>`` and is indented two
    spaces deeper than the previous one.
    """
    lines = []
    for depth, entry in enumerate(history):
        lines.append(f"{' ' * (depth * 2)}└─ {entry.parent} wants {entry.wants}")
    return "\n".join(lines)


class ConstraintConflict(ModuleResolutionError):
    """No single version satisfies every request made for a module.

    Raised both for incompatible release channels and for constraint sets
    the version resolver could not satisfy.
    """

    def __init__(
        self,
        module: str,
        history: Sequence["Resolution"] = (),
        message: str | None = None,
    ):
        self.module = module
        self.history = list(history)

        if message is None:
            message = (
                f"failed to resolve module '{module}' with constraints\n"
                f"{format_history(self.history)}"
            )
        super().__init__(message)


class ChannelConflict(ConstraintConflict):
    """A module was requested on two different release channels."""

    def __init__(
        self,
        module: str,
        previous_channel: str,
        previous_parent: str,
        channel: str,
        parent: str,
        history: Sequence["Resolution"] = (),
    ):
        self.previous_channel = previous_channel
        self.previous_parent = previous_parent
        self.channel = channel
        self.parent = parent
        super().__init__(
            module,
            history,
            message=(
                f"unable to resolve module {module}: module was previously resolved "
                f"with channel {previous_channel} (parent: {previous_parent}), "
                f"but now requires channel {channel} (parent: {parent})"
            ),
        )


class LockfileRequired(ModuleResolutionError):
    """Frozen mode was requested but no lockfile was loaded."""

    def __init__(self) -> None:
        super().__init__("frozen lockfile requires a lockfile to exist")


class MissingFromLock(ModuleResolutionError):
    """Frozen mode was requested but the lockfile does not cover every module."""

    def __init__(self, reasons: Sequence[str]):
        self.reasons = list(reasons)
        bullet_list = "\n".join(f"  - {reason}" for reason in self.reasons)
        super().__init__(
            f"frozen lockfile is missing {len(self.reasons)} module(s):\n{bullet_list}"
        )


class NonDeterministicReplacement(ModuleResolutionError):
    """A locked module points at a local path and cannot be reproduced."""

    def __init__(self, module: str, url: str):
        self.module = module
        self.url = url
        super().__init__(
            f"cannot use frozen lockfile for file dependency {module!r} ({url}), "
            f"re-add the replacement or run without --frozen-lockfile"
        )


class UpgradeRejected(ModuleResolutionError):
    """A major version upgrade was declined or could not be confirmed."""

    def __init__(self, module: str, from_version: str, to_version: str, reason: str):
        self.module = module
        self.from_version = from_version
        self.to_version = to_version
        self.reason = reason
        super().__init__(
            f"major version upgrade of {module!r} ({from_version} -> {to_version}) "
            f"was not applied: {reason}"
        )


class CollaboratorFailure(ModuleResolutionError):
    """The version resolver or module store failed for a module."""

    def __init__(self, module: str, action: str, detail: str = ""):
        self.module = module
        self.action = action
        message = f"failed to {action} for module {module!r}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class VersionNotFound(ModforgeError):
    """Raised by a version resolver when no ref matches the criteria."""


class ToolVersionMismatch(ModuleResolutionError):
    """A module requires a different modforge version than the running one."""

    def __init__(self, module: str, tool_version: str, constraint: str):
        self.module = module
        self.tool_version = tool_version
        self.constraint = constraint
        super().__init__(
            f"modforge version {tool_version} does not match the version "
            f"constraint ({constraint}) for {module}"
        )


class ReleaseNotesUnavailable(ModforgeError):
    """Release notes for a module version could not be fetched."""
