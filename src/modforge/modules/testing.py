"""In-memory collaborators for exercising the resolver without network access."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterable, Mapping

from modforge.configuration.manifest import ModuleManifest, ModuleRequest
from modforge.errors import CollaboratorFailure, VersionNotFound
from modforge.modules.models import Criteria, Version
from modforge.semver import Constraint, InvalidVersion, parse_tolerant


def manifest(name: str, *deps: str | ModuleRequest, **fields) -> ModuleManifest:
    """Build a ModuleManifest; string deps are module names without a version."""
    modules = [dep if isinstance(dep, ModuleRequest) else ModuleRequest(name=dep) for dep in deps]
    return ModuleManifest(name=name, modules=modules, **fields)


class FakeVersionResolver:
    """Resolves from fixed tag and branch lists, recording every call.

    Tags are keyed by URL; branches by (URL, channel). A request on a
    channel with a registered branch returns that branch as a mutable
    version. Otherwise the highest tag satisfying all constraints wins.
    Unconstrained requests only see pre-release tags on a channel.
    """

    def __init__(
        self,
        tags: Mapping[str, Iterable[str]] | None = None,
        branches: Mapping[tuple[str, str], str] | None = None,
        error: Exception | None = None,
    ):
        self.tags = {url: list(versions) for url, versions in (tags or {}).items()}
        self.branches = dict(branches or {})
        self.error = error
        self.calls: list[Criteria] = []
        self._lock = threading.Lock()

    def calls_for(self, url: str) -> list[Criteria]:
        with self._lock:
            return [criteria for criteria in self.calls if criteria.url == url]

    def resolve(
        self,
        criteria: Criteria,
        *,
        token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> Version:
        with self._lock:
            self.calls.append(criteria)
        if self.error is not None:
            raise self.error

        branch = self.branches.get((criteria.url, criteria.channel))
        if branch is not None and criteria.allow_branches:
            return Version(tag=branch, mutable=True)

        constraints = [Constraint.parse(text) for text in criteria.constraints]
        candidates = []
        for tag in self.tags.get(criteria.url, []):
            try:
                parsed = parse_tolerant(tag)
            except InvalidVersion:
                continue
            if parsed.prerelease and not criteria.channel and not constraints:
                continue
            if all(c.check(parsed) for c in constraints):
                candidates.append((parsed, tag))

        if not candidates:
            raise VersionNotFound(f"no version found matching criteria for {criteria.url}")
        return Version(tag=max(candidates)[1])


class FakeModuleStore:
    """Serves manifests keyed by (URI, version), falling back to URI alone."""

    def __init__(self, manifests: Mapping[str | tuple[str, str], ModuleManifest] | None = None):
        self.manifests = dict(manifests or {})
        self.fetches: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def add(self, uri: str, module_manifest: ModuleManifest, version: str | None = None) -> None:
        key = (uri, version) if version is not None else uri
        self.manifests[key] = module_manifest

    def manifest(
        self, uri: str, version: str, *, cancel: threading.Event | None = None
    ) -> ModuleManifest:
        with self._lock:
            self.fetches.append((uri, version))
        found = self.manifests.get((uri, version)) or self.manifests.get(uri)
        if found is None:
            raise CollaboratorFailure(uri, "fetch manifest", f"no manifest for {uri}@{version}")
        return found

    def get_fs(self, uri: str, version: str, *, cancel: threading.Event | None = None) -> Path:
        raise CollaboratorFailure(uri, "open module", "in-memory modules have no filesystem")
