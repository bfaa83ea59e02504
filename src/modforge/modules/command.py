"""The resolve step of project generation.

ResolveCommand ties the pieces together: frozen-lockfile pinning,
concurrent resolution, the major-version gate, then the tool version and
module argument checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from modforge import __version__
from modforge.configuration.lockfile import Lockfile, load_lockfile, save_lockfile
from modforge.configuration.manifest import (
    PROJECT_MANIFEST_NAME,
    ModuleManifest,
    ProjectManifest,
    load_project_manifest,
    validate_arguments,
)
from modforge.modules.cache import ResolutionCache
from modforge.modules.collaborators import ModuleStore, VersionResolver
from modforge.modules.lock import check_for_major_versions, use_modules_from_lock
from modforge.modules.models import Module
from modforge.modules.release_notes import github_token
from modforge.modules.resolver import DEFAULT_CONCURRENCY, Resolver
from modforge.modules.validate import validate_tool_version

logger = logging.getLogger(__name__)


@dataclass
class ResolveResult:
    """Modules picked by a resolve run, with manifests and argument values by module name."""

    modules: list[Module]
    manifests: dict[str, ModuleManifest] = field(default_factory=dict)
    arguments: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class ResolveCommand:
    """Resolves the modules of one project."""

    manifest: ProjectManifest
    store: ModuleStore
    version_resolver: VersionResolver
    lock: Lockfile | None = None
    frozen: bool = False
    allow_major_upgrades: bool = False
    use_prerelease: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    token: str | None = None
    cache: ResolutionCache | None = None
    tool_version: str = __version__

    @classmethod
    def from_project_dir(
        cls,
        project_dir: Path,
        *,
        store: ModuleStore,
        version_resolver: VersionResolver,
        **options,
    ) -> "ResolveCommand":
        """Load ``modforge.yaml`` and ``modforge.lock`` from *project_dir*."""
        manifest = load_project_manifest(project_dir / PROJECT_MANIFEST_NAME)
        lock = load_lockfile(project_dir)
        return cls(manifest=manifest, store=store, version_resolver=version_resolver, lock=lock, **options)

    def run(self) -> ResolveResult:
        """Resolve every module the project needs.

        Raises:
            ModforgeError: If resolution fails or a check rejects the result.
        """
        if self.use_prerelease:
            self.manifest.use_prerelease()
        if self.frozen:
            use_modules_from_lock(self.manifest, self.lock)

        token = github_token(self.token)
        resolver = Resolver(
            store=self.store,
            version_resolver=self.version_resolver,
            project=self.manifest,
            concurrency=self.concurrency,
            token=token,
            cache=self.cache,
        )
        modules = resolver.resolve()

        check_for_major_versions(modules, self.lock, self.allow_major_upgrades, token=token)
        validate_tool_version(resolver.manifests, self.tool_version)
        arguments = {
            name: validate_arguments(module_manifest.arguments, self.manifest.arguments, module=name)
            for name, module_manifest in resolver.manifests.items()
        }

        logger.info("Resolved modules:")
        for module in modules:
            logger.info(" -> %s %s", module.name, module.version)
        return ResolveResult(modules=modules, manifests=dict(resolver.manifests), arguments=arguments)

    def write_lockfile(self, project_dir: Path, result: ResolveResult) -> Path:
        """Record *result* in ``modforge.lock`` under *project_dir*."""
        lock = Lockfile.from_modules(self.tool_version, result.modules)
        return save_lockfile(project_dir, lock)
