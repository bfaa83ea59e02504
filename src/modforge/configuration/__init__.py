"""Manifest and lockfile configuration for modforge projects."""

from modforge.configuration.lockfile import (
    LOCKFILE_NAME,
    Lockfile,
    LockfileFile,
    LockfileModule,
    load_lockfile,
    save_lockfile,
)
from modforge.configuration.manifest import (
    MODULE_MANIFEST_NAME,
    PROJECT_MANIFEST_NAME,
    Argument,
    ArgumentType,
    ModuleManifest,
    ModuleRequest,
    PostRunCommand,
    ProjectManifest,
    check_module_name,
    load_project_manifest,
    parse_module_manifest,
    validate_arguments,
)

__all__ = [
    "LOCKFILE_NAME",
    "MODULE_MANIFEST_NAME",
    "PROJECT_MANIFEST_NAME",
    "Argument",
    "ArgumentType",
    "Lockfile",
    "LockfileFile",
    "LockfileModule",
    "ModuleManifest",
    "ModuleRequest",
    "PostRunCommand",
    "ProjectManifest",
    "check_module_name",
    "load_lockfile",
    "load_project_manifest",
    "parse_module_manifest",
    "save_lockfile",
    "validate_arguments",
]
