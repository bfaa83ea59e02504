"""The modforge.lock file recording what the last run generated."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from pydantic import BaseModel, Field, ValidationError, field_validator
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from modforge.errors import ManifestError

if TYPE_CHECKING:
    from modforge.modules.models import Module

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "modforge.lock"


class LockfileModule(BaseModel):
    """A module version used by the last run."""

    name: str
    url: str = ""
    version: str


class LockfileFile(BaseModel):
    """A file written by the last run and the template it came from."""

    name: str
    template: str = ""
    module: str = ""


class Lockfile(BaseModel):
    """Contents of modforge.lock."""

    # Version of modforge that generated this file.
    version: str = ""
    generated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    modules: list[LockfileModule] = Field(default_factory=list)
    files: list[LockfileFile] = Field(default_factory=list)

    @field_validator("modules", "files", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value

    def get_module(self, name: str) -> LockfileModule | None:
        for module in self.modules:
            if module.name == name:
                return module
        return None

    @classmethod
    def from_modules(
        cls,
        tool_version: str,
        modules: Iterable["Module"],
        files: Iterable[LockfileFile] = (),
    ) -> "Lockfile":
        """Build a lockfile for *modules*, sorted by name for stable diffs."""
        entries = [
            LockfileModule(name=module.name, url=module.uri, version=module.version)
            for module in sorted(modules, key=lambda m: m.name)
        ]
        return cls(
            version=tool_version,
            modules=entries,
            files=sorted(files, key=lambda f: f.name),
        )


def load_lockfile(project_dir: Path) -> Lockfile | None:
    """Load ``modforge.lock`` from *project_dir*.

    Returns:
        The parsed lockfile, or None when the project has none yet.

    Raises:
        ManifestError: If the lockfile exists but cannot be parsed.
    """
    path = project_dir / LOCKFILE_NAME
    if not path.is_file():
        logger.debug("No lockfile at %s", path)
        return None

    yaml = YAML(typ="safe")
    try:
        data = yaml.load(path)
    except YAMLError as exc:
        raise ManifestError(f"Failed to parse {path}: {exc}") from exc

    try:
        return Lockfile.model_validate(data or {})
    except ValidationError as exc:
        raise ManifestError(f"Invalid lockfile {path}: {exc}") from exc


def save_lockfile(project_dir: Path, lock: Lockfile) -> Path:
    """Write *lock* to ``modforge.lock`` in *project_dir* and return its path."""
    path = project_dir / LOCKFILE_NAME
    yaml = YAML()
    yaml.default_flow_style = False
    with path.open("w", encoding="utf-8") as handle:
        yaml.dump(lock.model_dump(mode="json"), handle)
    return path
