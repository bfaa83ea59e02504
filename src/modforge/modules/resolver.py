"""Concurrent resolution of a project's module dependency graph.

A Resolver owns all mutable state for one run: the work queue, the ledger
of requests per module name, the fetched manifests, and the cancellation
event shared with every collaborator call. Workers pull tasks from the
queue until it is empty and no other worker can still push new tasks.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Mapping

from modforge.configuration.manifest import (
    STABLE_CHANNEL,
    ModuleManifest,
    ModuleRequest,
    ProjectManifest,
    check_module_name,
)
from modforge.errors import (
    ChannelConflict,
    CollaboratorFailure,
    ConstraintConflict,
    ModforgeError,
    VersionNotFound,
    format_history,
)
from modforge.modules.cache import ResolutionCache
from modforge.modules.collaborators import ModuleStore, VersionResolver
from modforge.modules.models import (
    LOCAL_VERSION,
    Criteria,
    LedgerEntry,
    Module,
    Resolution,
    ResolveTask,
    Version,
    WorkItem,
    uri_is_local,
)
from modforge.modules.worklist import WorkQueue
from modforge.semver import Constraint

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5


def effective_channel(history: list[Resolution]) -> Resolution | None:
    """Return the first request in *history* that pinned a non-stable channel."""
    for resolution in history:
        if resolution.channel and resolution.channel != STABLE_CHANNEL:
            return resolution
    return None


class Resolver:
    """Resolves every module reachable from a project (or a single module).

    Exactly one of ``project`` and ``module`` must be given. When resolving
    a module, that module is used as-is and only its dependencies are
    resolved.

    Args:
        store: Fetches module manifests.
        version_resolver: Picks versions for remote modules.
        project: Project manifest whose modules are the top-level requests.
        module: Module to resolve the dependencies of.
        replacements: In-memory modules to use instead of resolving them.
        concurrency: Number of worker threads.
        token: Credential handed to the version resolver.
        cache: Resolution cache, defaults to the user cache directory.
    """

    def __init__(
        self,
        *,
        store: ModuleStore,
        version_resolver: VersionResolver,
        project: ProjectManifest | None = None,
        module: Module | None = None,
        replacements: Mapping[str, Module] | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        token: str | None = None,
        cache: ResolutionCache | None = None,
    ):
        if (project is None) == (module is None):
            raise ValueError("exactly one of project or module is required")
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.store = store
        self.version_resolver = version_resolver
        self.concurrency = concurrency
        self.token = token
        self.cache = cache if cache is not None else ResolutionCache()
        self.manifests: dict[str, ModuleManifest] = {}

        injected = dict(replacements or {})
        if project is not None:
            parent = f"{project.name} (top-level)"
            tasks = [ResolveTask(request=request, parent=parent) for request in project.modules]
            uri_replacements = dict(project.replacements)
        else:
            injected[module.name] = module
            tasks = [ResolveTask(request=ModuleRequest(name=module.name), parent=f"{module.name} (top-level)")]
            uri_replacements = {}

        self._queue = WorkQueue(tasks, replacements=uri_replacements, injected=injected.values())
        self._cancel = threading.Event()
        self._idle = threading.Condition()
        self._in_flight = 0
        self._error: BaseException | None = None
        self._manifests_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def requests(self, name: str) -> list[Resolution]:
        """Requests recorded so far for module *name*, oldest first."""
        entry = self._queue.get_entry(name)
        return entry.snapshot() if entry is not None else []

    def resolve(self) -> list[Module]:
        """Resolve the dependency graph.

        Returns:
            The resolved modules in the order they were discovered.

        Raises:
            ModforgeError: The first error hit by any worker.
        """
        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="modforge-resolve"
        ) as pool:
            futures = [pool.submit(self._worker) for _ in range(self.concurrency)]
            wait(futures)

        if self._error is not None:
            raise self._error

        modules = self._queue.resolved_modules()
        logger.debug("Resolved %d module(s)", len(modules))
        return modules

    def _worker(self) -> None:
        while True:
            item = self._next_item()
            if item is None:
                return
            try:
                self._process(item)
            except Exception as exc:
                self._fail(exc)
            finally:
                self._finish_item()

    def _next_item(self) -> WorkItem | None:
        with self._idle:
            while not self._cancel.is_set():
                item = self._queue.pop()
                if item is not None:
                    self._in_flight += 1
                    return item
                if self._in_flight == 0:
                    return None
                # Another worker may still push dependencies.
                self._idle.wait()
            return None

    def _finish_item(self) -> None:
        with self._idle:
            self._in_flight -= 1
            self._idle.notify_all()

    def _fail(self, exc: BaseException) -> None:
        with self._idle:
            if self._error is None:
                self._error = exc
            else:
                logger.debug("Suppressing additional resolution error: %s", exc)
            self._cancel.set()
            self._idle.notify_all()

    def _process(self, item: WorkItem) -> None:
        entry = item.entry
        if entry.dont_resolve:
            with entry.lock:
                module = entry.chosen
            self._expand(entry, module)
            return

        # Serialised per module: whichever worker takes the lock last reads a
        # history that includes every request popped before it.
        with entry.resolving:
            if self._cancel.is_set():
                return
            version = self._resolve_version(item)
            module = Module(name=item.name, uri=item.uri, version=version.tag, mutable=version.mutable)
            with entry.lock:
                entry.version = version
                entry.chosen = module
            self._expand(entry, module)

    def _expand(self, entry: LedgerEntry, module: Module) -> None:
        """Record *module*'s manifest and queue its dependencies, once per module."""
        with entry.lock:
            if entry.expanded == module:
                return
            entry.expanded = module

        manifest = self._fetch_manifest(module)
        with self._manifests_lock:
            self.manifests[module.name] = manifest

        for request in manifest.modules:
            self._queue.push(ResolveTask(request=request, parent=module.describe()))

    def _fetch_manifest(self, module: Module) -> ModuleManifest:
        try:
            manifest = self.store.manifest(module.uri, module.version, cancel=self._cancel)
        except ModforgeError:
            raise
        except Exception as exc:
            raise CollaboratorFailure(module.name, "fetch manifest", str(exc)) from exc

        check_module_name(manifest, module.name)
        return manifest

    def _resolve_version(self, item: WorkItem) -> Version:
        """Pick a version satisfying every request recorded for the module."""
        entry = item.entry
        history = entry.snapshot()

        pinned = effective_channel(history)
        if (
            pinned is not None
            and item.channel
            and item.channel != STABLE_CHANNEL
            and item.channel != pinned.channel
        ):
            raise ChannelConflict(
                item.name,
                previous_channel=pinned.channel,
                previous_parent=pinned.parent,
                channel=item.channel,
                parent=item.task.parent,
                history=history,
            )
        channel = pinned.channel if pinned is not None else ""
        constraints = tuple(r.constraint for r in history if r.constraint)

        with entry.lock:
            current = entry.version
        if current is not None and current.mutable:
            logger.warning(
                "Module %s resolved to mutable version %s, result is non-deterministic",
                item.name,
                current.tag,
            )
            return current

        if uri_is_local(item.uri):
            logger.debug("Using local module %s from %s", item.name, item.uri)
            return Version(tag=LOCAL_VERSION, mutable=True)

        cached = self._cached_version(item, channel, constraints)
        if cached is not None:
            return cached

        criteria = Criteria(url=item.uri, channel=channel, constraints=constraints, allow_branches=True)
        try:
            version = self.version_resolver.resolve(criteria, token=self.token, cancel=self._cancel)
        except VersionNotFound as exc:
            raise ConstraintConflict(item.name, history) from exc
        except ModforgeError:
            raise
        except Exception as exc:
            raise CollaboratorFailure(
                item.name, "resolve version", f"{format_history(history)}\n{exc}"
            ) from exc

        try:
            self.cache.put(item.uri, channel, version)
        except OSError as exc:
            raise CollaboratorFailure(item.name, "cache resolved version", str(exc)) from exc

        logger.debug("Resolved %s to %s", item.name, version.tag)
        return version

    def _cached_version(
        self, item: WorkItem, channel: str, constraints: tuple[str, ...]
    ) -> Version | None:
        try:
            cached = self.cache.get(item.uri, channel)
        except OSError as exc:
            raise CollaboratorFailure(item.name, "read cached version", str(exc)) from exc

        if cached is None:
            return None
        if cached.mutable or all(Constraint.parse(c).check(cached.tag) for c in constraints):
            logger.debug("Using cached version %s for %s", cached.tag, item.name)
            return cached

        logger.debug("Cached version %s of %s no longer satisfies %s", cached.tag, item.name, constraints)
        return None
