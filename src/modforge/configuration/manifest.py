"""Project and module manifest schemas.

Defines the schema for:
- modforge.yaml (the project manifest at the root of a generated repository)
- manifest.yaml (the manifest at the root of every template module)
- typed template arguments declared by modules
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum
from pathlib import Path
from typing import Any, IO, Mapping
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from modforge.errors import ManifestError

logger = logging.getLogger(__name__)

PROJECT_MANIFEST_NAME = "modforge.yaml"
MODULE_MANIFEST_NAME = "manifest.yaml"

# Restricted to ASCII on purpose, project names end up in paths and identifiers.
VALID_NAME_PATTERN = re.compile(r"^[_a-z][_a-z0-9-]*$")

PRERELEASE_CHANNEL = "rc"
STABLE_CHANNEL = "stable"

_SCP_URL = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>.+)$")


def import_path_from_url(url: str) -> str:
    """Convert a git URL into a module import path (``host/path``).

    Accepts ``https://``, ``ssh://`` and scp-style (``git@host:org/repo``) URLs.
    """
    url = url.strip()
    if "://" in url:
        parsed = urlparse(url)
        host, path = parsed.hostname or "", parsed.path
    else:
        match = _SCP_URL.match(url)
        if match is None:
            raise ValueError(f"failed to parse deprecated url module syntax {url!r} as a URL")
        host, path = match.group("host"), match.group("path")

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    if not host or not path:
        raise ValueError(f"failed to parse deprecated url module syntax {url!r} as a URL")
    return f"{host}/{path}"


class ModuleRequest(BaseModel):
    """A module requested by a project or by another module."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    version: str = ""
    channel: str = ""
    # Deprecated: use name instead.
    url: str = ""
    # Deprecated: use channel "rc" instead.
    prerelease: bool = False

    @model_validator(mode="after")
    def _derive_name(self) -> "ModuleRequest":
        if self.url and not self.name:
            logger.warning("Module url %r is deprecated, use name instead", self.url)
            self.name = import_path_from_url(self.url)
        if not self.name:
            raise ValueError("module entries require a name")
        return self

    @property
    def requested_channel(self) -> str:
        """Channel asked for, folding in the deprecated prerelease flag."""
        if self.channel:
            return self.channel
        return PRERELEASE_CHANNEL if self.prerelease else ""


class ArgumentType(StrEnum):
    """Value types a template argument can declare."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    LIST = "list"
    MAP = "map"


def _matches_type(value: Any, arg_type: ArgumentType) -> bool:
    if arg_type is ArgumentType.STRING:
        return isinstance(value, str)
    if arg_type is ArgumentType.BOOLEAN:
        return isinstance(value, bool)
    if arg_type is ArgumentType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if arg_type is ArgumentType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if arg_type is ArgumentType.LIST:
        return isinstance(value, list)
    return isinstance(value, dict)


class Argument(BaseModel):
    """A user-supplied argument a module's templates can read."""

    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    required: bool = False
    type: ArgumentType = ArgumentType.STRING
    # Allowed values for scalar arguments; empty means anything goes.
    values: list[str] = Field(default_factory=list)
    default: Any = None
    # Module whose argument of the same name this one mirrors.
    from_module: str | None = Field(default=None, alias="from")
    json_schema: dict[str, Any] | None = Field(default=None, alias="schema")

    @model_validator(mode="after")
    def _check_default(self) -> "Argument":
        if self.default is not None:
            problem = self.check_value(self.default)
            if problem:
                raise ValueError(f"default {problem}")
        return self

    def check_value(self, value: Any) -> str | None:
        """Return a description of what is wrong with *value*, or None."""
        if not _matches_type(value, self.type):
            return f"value {value!r} is not of type {self.type.value}"
        if self.values and self.type not in (ArgumentType.LIST, ArgumentType.MAP):
            if str(value) not in self.values:
                return f"value {value!r} is not one of {', '.join(self.values)}"
        return None


def validate_arguments(
    declared: Mapping[str, Argument],
    supplied: Mapping[str, Any],
    *,
    module: str,
) -> dict[str, Any]:
    """Check *supplied* values against *declared* arguments.

    Returns the declared arguments' values with defaults filled in.

    Raises:
        ManifestError: Listing every missing or mistyped argument.
    """
    problems: list[str] = []
    resolved: dict[str, Any] = {}
    for name, argument in declared.items():
        if name in supplied and supplied[name] is not None:
            problem = argument.check_value(supplied[name])
            if problem:
                problems.append(f"argument {name!r}: {problem}")
                continue
            resolved[name] = supplied[name]
        elif argument.default is not None:
            resolved[name] = argument.default
        elif argument.required:
            problems.append(f"argument {name!r} is required")

    if problems:
        details = "\n".join(f"  - {problem}" for problem in problems)
        raise ManifestError(f"invalid arguments for module {module}:\n{details}")
    return resolved


class PostRunCommand(BaseModel):
    """A shell command run after templates are rendered."""

    name: str = ""
    command: str


class ModuleManifest(BaseModel):
    """The manifest.yaml at the root of a template module."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    modules: list[ModuleRequest] = Field(default_factory=list)
    # Comma separated in YAML, e.g. "templates,extension".
    type: list[str] = Field(default_factory=list)
    arguments: dict[str, Argument] = Field(default_factory=dict)
    post_run_commands: list[PostRunCommand] = Field(default_factory=list, alias="postRunCommand")
    # Constraint on the modforge version able to render this module.
    modforge_version: str | None = Field(default=None, alias="modforgeVersion")

    @field_validator("type", mode="before")
    @classmethod
    def _split_types(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("modules", "post_run_commands", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ProjectManifest(BaseModel):
    """The modforge.yaml describing a generated project."""

    name: str
    modules: list[ModuleRequest] = Field(default_factory=list)
    versions: dict[str, str] = Field(default_factory=dict)
    arguments: dict[str, Any] = Field(default_factory=dict)
    # Module import path -> URI to fetch it from instead (file://, https://, git@).
    replacements: dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not VALID_NAME_PATTERN.match(value):
            raise ValueError(f"name {value!r} must match {VALID_NAME_PATTERN.pattern}")
        return value

    @field_validator("modules", "versions", "arguments", "replacements", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any, info: Any) -> Any:
        if value is None:
            return [] if info.field_name == "modules" else {}
        return value

    def use_prerelease(self) -> None:
        """Move every module onto the rc channel (deprecated --use-prerelease)."""
        logger.warning(
            "--use-prerelease is deprecated, set 'rc' as the channel on each module "
            "in %s instead",
            PROJECT_MANIFEST_NAME,
        )
        for module in self.modules:
            module.channel = PRERELEASE_CHANNEL
            module.version = ""


def _load_yaml(source: Path | IO[str], description: str) -> Any:
    yaml = YAML(typ="safe")
    try:
        return yaml.load(source)
    except YAMLError as exc:
        raise ManifestError(f"Failed to parse {description}: {exc}") from exc


def load_project_manifest(path: Path) -> ProjectManifest:
    """Load and validate a project manifest from *path*.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ManifestError: If the file is not a valid project manifest.
    """
    data = _load_yaml(path, str(path))
    try:
        return ProjectManifest.model_validate(data or {})
    except ValidationError as exc:
        raise ManifestError(f"Invalid project manifest {path}: {exc}") from exc


def check_module_name(manifest: ModuleManifest, expected_name: str) -> None:
    """Raise ManifestError unless *manifest* declares *expected_name*."""
    if manifest.name != expected_name:
        raise ManifestError(
            f"module declares its import path as {manifest.name!r} "
            f"but was imported as {expected_name!r}"
        )


def parse_module_manifest(
    source: Path | IO[str], expected_name: str | None = None
) -> ModuleManifest:
    """Parse a module manifest, checking it declares *expected_name* if given.

    Raises:
        ManifestError: If the manifest is invalid or declares another import path.
    """
    description = f"manifest of module {expected_name}" if expected_name else str(source)
    data = _load_yaml(source, description)
    try:
        manifest = ModuleManifest.model_validate(data or {})
    except ValidationError as exc:
        raise ManifestError(f"Invalid {description}: {exc}") from exc

    if expected_name is not None:
        check_module_name(manifest, expected_name)
    return manifest
