"""Module dependency resolution.

Public entry points:

- ``Resolver`` resolves a dependency graph concurrently.
- ``ResolveCommand`` runs resolution for a project, honouring its lockfile.
- ``use_modules_from_lock`` and ``check_for_major_versions`` reconcile
  results with a previous lockfile.
"""

from modforge.modules.cache import MODULE_CACHE_TTL, ResolutionCache
from modforge.modules.collaborators import LocalModuleStore, ModuleStore, VersionResolver
from modforge.modules.command import ResolveCommand, ResolveResult
from modforge.modules.lock import check_for_major_versions, use_modules_from_lock
from modforge.modules.models import LOCAL_VERSION, Criteria, Module, Version
from modforge.modules.resolver import DEFAULT_CONCURRENCY, Resolver
from modforge.modules.validate import validate_tool_version
from modforge.modules.worklist import WorkQueue

__all__ = [
    "DEFAULT_CONCURRENCY",
    "LOCAL_VERSION",
    "MODULE_CACHE_TTL",
    "Criteria",
    "LocalModuleStore",
    "Module",
    "ModuleStore",
    "ResolutionCache",
    "ResolveCommand",
    "ResolveResult",
    "Resolver",
    "Version",
    "VersionResolver",
    "WorkQueue",
    "check_for_major_versions",
    "use_modules_from_lock",
    "validate_tool_version",
]
