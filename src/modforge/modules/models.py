"""Data types shared by the module resolver.

Module and Version values are immutable. LedgerEntry is the only mutable
record; it is owned by a WorkQueue and guarded by its own lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from modforge.configuration.manifest import ModuleRequest

# Version reported for modules served from a local path.
LOCAL_VERSION = "local"


def uri_is_local(uri: str) -> bool:
    """Return True if *uri* is a local path or a ``file://`` URI."""
    return "://" not in uri or uri.startswith("file://")


def local_uri(uri: str) -> str:
    """Return a local module location as a ``file://`` URI.

    Bare paths are made absolute first; ``file://`` URIs are returned as-is.
    """
    if uri.startswith("file://"):
        return uri
    return Path(uri).absolute().as_uri()


@dataclass(frozen=True)
class Version:
    """A version picked by a version resolver."""

    tag: str
    # True when the tag is a branch (or other moving ref) rather than a release.
    mutable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"tag": self.tag, "mutable": self.mutable}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Version":
        tag = data.get("tag")
        if not isinstance(tag, str) or not tag:
            raise ValueError("version payload requires a non-empty 'tag'")
        return cls(tag=tag, mutable=bool(data.get("mutable", False)))


@dataclass(frozen=True)
class Criteria:
    """What a version resolver is asked to satisfy."""

    url: str
    channel: str = ""
    constraints: tuple[str, ...] = ()
    allow_branches: bool = True


@dataclass(frozen=True)
class Module:
    """A template module pinned to one version."""

    name: str
    uri: str
    version: str
    mutable: bool = False

    @property
    def is_local(self) -> bool:
        return uri_is_local(self.uri)

    def describe(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class Resolution:
    """One request made for a module, kept for conflict diagnostics."""

    constraint: str
    channel: str
    parent: str

    @property
    def wants(self) -> str:
        if self.constraint:
            return self.constraint
        if self.channel:
            return f"(channel) {self.channel}"
        return "*"


@dataclass(frozen=True)
class ResolveTask:
    """A queued request to resolve ``request`` on behalf of ``parent``."""

    request: ModuleRequest
    parent: str


@dataclass
class LedgerEntry:
    """Everything known about one module name during a run."""

    name: str
    history: list[Resolution] = field(default_factory=list)
    chosen: Module | None = None
    version: Version | None = None
    # Injected modules are used as-is and never resolved.
    dont_resolve: bool = False
    # The module whose dependencies have already been queued.
    expanded: Module | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    # Held from reading the history until the chosen module is expanded.
    resolving: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def snapshot(self) -> list[Resolution]:
        with self.lock:
            return list(self.history)


@dataclass(frozen=True)
class WorkItem:
    """A popped task, normalised and paired with its ledger entry."""

    name: str
    entry: LedgerEntry
    task: ResolveTask
    constraint: str = ""
    channel: str = ""
    # None when the entry is injected and no fetch is needed.
    uri: str | None = None
