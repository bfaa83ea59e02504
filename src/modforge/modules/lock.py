"""Reconcile resolution results with a previously written lockfile.

Two checks live here: frozen mode, which pins a project manifest to the
versions recorded in its lockfile, and the major-version gate, which stops a
resolution from silently crossing a major version boundary.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import typer

from modforge.configuration.lockfile import Lockfile
from modforge.configuration.manifest import ModuleRequest, ProjectManifest
from modforge.errors import (
    LockfileRequired,
    MissingFromLock,
    NonDeterministicReplacement,
    ReleaseNotesUnavailable,
    UpgradeRejected,
)
from modforge.modules.models import Module, uri_is_local
from modforge.modules.prompts import confirm_major_upgrade, is_interactive
from modforge.modules.release_notes import fetch_release_notes, render_markdown
from modforge.semver import InvalidVersion, parse_tolerant

logger = logging.getLogger(__name__)

ALLOW_MAJOR_UPGRADES_FLAG = "--allow-major-version-upgrades"


def use_modules_from_lock(manifest: ProjectManifest, lock: Lockfile | None) -> None:
    """Pin every module of *manifest* to the version recorded in *lock*.

    Locked modules the manifest does not list are added as top-level
    requests. Channels are cleared so the locked version is used verbatim.
    The manifest is only modified once every check has passed.

    Raises:
        LockfileRequired: If there is no lockfile.
        MissingFromLock: If requested modules are absent from the lockfile.
        NonDeterministicReplacement: If a locked module points at a local path.
    """
    if lock is None:
        raise LockfileRequired()

    locked = {module.name: module for module in lock.modules}
    desired = {module.name for module in manifest.modules}

    reasons = [
        f"{name}: requested by {manifest.name} but not found in the lockfile"
        for name in (module.name for module in manifest.modules)
        if name not in locked
    ]
    if reasons:
        raise MissingFromLock(reasons)

    for module in lock.modules:
        if module.url and uri_is_local(module.url):
            raise NonDeterministicReplacement(module.name, module.url)

    for module in manifest.modules:
        module.version = locked[module.name].version
        module.channel = ""
        module.prerelease = False

    for module in lock.modules:
        if module.name in desired:
            continue
        logger.debug("Adding %s@%s from lockfile as a top-level module", module.name, module.version)
        manifest.modules.append(ModuleRequest(name=module.name, version=module.version))


def _release_notes(module: Module, fetch_notes: Callable[..., str], token: str | None) -> str:
    try:
        notes = fetch_notes(module.name, module.version, token=token)
    except ReleaseNotesUnavailable as exc:
        logger.warning("Unable to show release notes for %s: %s", module.describe(), exc)
        return ""
    return render_markdown(notes)


def check_for_major_versions(
    modules: Iterable[Module],
    lock: Lockfile | None,
    allow_major_upgrades: bool,
    *,
    token: str | None = None,
    interactive: Callable[[], bool] | None = None,
    confirm: Callable[[str, str, str, str], bool] | None = None,
    fetch_notes: Callable[..., str] | None = None,
) -> None:
    """Require confirmation for modules whose major version went up since *lock*.

    Versions that do not parse as semver (branches, local modules) are
    skipped.

    Raises:
        UpgradeRejected: If an upgrade was declined or cannot be confirmed.
    """
    if lock is None:
        return
    interactive = interactive or is_interactive
    confirm = confirm or confirm_major_upgrade
    fetch_notes = fetch_notes or fetch_release_notes

    for module in modules:
        locked = lock.get_module(module.name)
        if locked is None:
            continue

        try:
            previous = parse_tolerant(locked.version)
            current = parse_tolerant(module.version)
        except InvalidVersion:
            logger.debug("Skipping major version check of %s, not a semver version", module.name)
            continue

        if current.major <= previous.major:
            continue

        if allow_major_upgrades:
            logger.info(
                "Upgrading %s from %s to %s (major version upgrades allowed)",
                module.name,
                locked.version,
                module.version,
            )
            continue

        if not interactive():
            raise UpgradeRejected(
                module.name,
                locked.version,
                module.version,
                f"confirmation is required but stdin is not interactive, "
                f"re-run with {ALLOW_MAJOR_UPGRADES_FLAG} to accept it",
            )

        notes = _release_notes(module, fetch_notes, token)
        try:
            accepted = confirm(module.name, locked.version, module.version, notes)
        except (typer.Abort, EOFError, OSError) as exc:
            raise UpgradeRejected(
                module.name, locked.version, module.version, f"failed to read confirmation: {exc}"
            ) from exc

        if not accepted:
            raise UpgradeRejected(
                module.name,
                locked.version,
                module.version,
                "Not updating, re-run with --frozen-lockfile to proceed",
            )
