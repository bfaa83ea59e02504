"""Interfaces the resolver depends on, plus the local-path module store."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

from modforge.configuration.manifest import MODULE_MANIFEST_NAME, ModuleManifest, parse_module_manifest
from modforge.errors import CollaboratorFailure
from modforge.modules.models import Criteria, Version, uri_is_local

logger = logging.getLogger(__name__)


@runtime_checkable
class VersionResolver(Protocol):
    """Picks a concrete version of a module repository."""

    def resolve(
        self,
        criteria: Criteria,
        *,
        token: str | None = None,
        cancel: threading.Event | None = None,
    ) -> Version:
        """Return the newest version satisfying *criteria*.

        Raises:
            VersionNotFound: If no tag or branch satisfies the criteria.
        """
        ...


@runtime_checkable
class ModuleStore(Protocol):
    """Fetches module content at a version."""

    def manifest(
        self, uri: str, version: str, *, cancel: threading.Event | None = None
    ) -> ModuleManifest:
        ...

    def get_fs(self, uri: str, version: str, *, cancel: threading.Event | None = None) -> Path:
        ...


def local_path(uri: str) -> Path:
    """Turn a bare path or ``file://`` URI into a filesystem path."""
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    return Path(uri)


class LocalModuleStore:
    """ModuleStore for modules checked out on the local filesystem.

    Only local URIs are served; remote modules need a store that can clone.
    """

    def get_fs(self, uri: str, version: str, *, cancel: threading.Event | None = None) -> Path:
        if not uri_is_local(uri):
            raise CollaboratorFailure(uri, "open module", f"{uri} is not a local module path")
        path = local_path(uri)
        if not path.is_dir():
            raise CollaboratorFailure(uri, "open module", f"{path} is not a directory")
        return path

    def manifest(
        self, uri: str, version: str, *, cancel: threading.Event | None = None
    ) -> ModuleManifest:
        path = self.get_fs(uri, version, cancel=cancel) / MODULE_MANIFEST_NAME
        logger.debug("Reading module manifest %s", path)
        if not path.exists():
            raise CollaboratorFailure(uri, "read manifest", f"{path} does not exist")

        return parse_module_manifest(path)
