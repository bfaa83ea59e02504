"""Thread-safe work queue of modules left to resolve.

Every method on WorkQueue may be called from any worker thread. The queue
and the name -> LedgerEntry map share one lock; each entry's history and
chosen module are additionally guarded by the entry's own lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Iterable, Mapping

from modforge.modules.models import (
    LedgerEntry,
    Module,
    Resolution,
    ResolveTask,
    Version,
    WorkItem,
    local_uri,
    uri_is_local,
)
from modforge.semver import is_constraint

logger = logging.getLogger(__name__)


class WorkQueue:
    """Pending resolve tasks plus the resolution ledger of the current run."""

    def __init__(
        self,
        tasks: Iterable[ResolveTask] = (),
        replacements: Mapping[str, str] | None = None,
        injected: Iterable[Module] = (),
    ):
        """Initialise the queue.

        Args:
            tasks: Initial (top-level) tasks.
            replacements: Module import path -> URI to fetch it from.
            injected: Modules to use as-is, they are never resolved.
        """
        self._tasks: deque[ResolveTask] = deque(tasks)
        # Bare local replacement paths become absolute file:// URIs.
        self._replacements = {
            name: local_uri(uri) if uri_is_local(uri) else uri for name, uri in (replacements or {}).items()
        }
        self._entries: dict[str, LedgerEntry] = {}
        # Names in the order they were first popped.
        self._order: dict[str, None] = {}
        self._lock = threading.Lock()

        for module in injected:
            self._entries[module.name] = LedgerEntry(
                name=module.name,
                chosen=module,
                version=Version(tag=module.version, mutable=module.mutable),
                dont_resolve=True,
            )

    def push(self, task: ResolveTask) -> None:
        """Append *task* to the end of the queue."""
        with self._lock:
            self._tasks.append(task)

    def pop(self) -> WorkItem | None:
        """Remove the first task and pair it with its ledger entry.

        A requested version that is not a valid constraint is treated as a
        channel (branch) name. Unless the module is injected, the request is
        appended to the entry's history and the fetch URI is worked out.

        Returns:
            The work item, or None when the queue is empty.
        """
        with self._lock:
            if not self._tasks:
                return None
            task = self._tasks.popleft()

            request = task.request
            constraint = request.version
            channel = request.requested_channel
            if constraint and not is_constraint(constraint):
                # Not a constraint, so it names a branch, which behaves like a channel.
                channel, constraint = constraint, ""

            name = request.name
            entry = self._entries.get(name)
            if entry is None:
                entry = self._entries[name] = LedgerEntry(name=name)
            self._order.setdefault(name, None)

            if entry.dont_resolve:
                logger.debug("Using in-memory module %s", name)
                return WorkItem(name=name, entry=entry, task=task, constraint=constraint, channel=channel)

            with entry.lock:
                entry.history.append(
                    Resolution(constraint=constraint, channel=channel, parent=task.parent)
                )

            logger.debug("Resolving module %s (parent: %s)", name, task.parent)
            uri = self._replacements.get(name, f"https://{name}")
            return WorkItem(
                name=name,
                entry=entry,
                task=task,
                constraint=constraint,
                channel=channel,
                uri=uri,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def get_entry(self, name: str) -> LedgerEntry | None:
        with self._lock:
            return self._entries.get(name)

    def resolved_modules(self) -> list[Module]:
        """Return the chosen module of every popped name, in discovery order."""
        with self._lock:
            entries = [self._entries[name] for name in self._order]

        modules = []
        for entry in entries:
            with entry.lock:
                if entry.chosen is not None:
                    modules.append(entry.chosen)
        return modules
