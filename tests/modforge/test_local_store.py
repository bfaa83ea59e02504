"""Tests for the filesystem-backed module store."""

from __future__ import annotations

from pathlib import Path

import pytest

from modforge.configuration import Lockfile, ModuleRequest, ProjectManifest
from modforge.errors import CollaboratorFailure, NonDeterministicReplacement
from modforge.modules import LocalModuleStore, Resolver
from modforge.modules.cache import ResolutionCache
from modforge.modules.collaborators import ModuleStore, VersionResolver
from modforge.modules.lock import use_modules_from_lock
from modforge.modules.testing import FakeModuleStore, FakeVersionResolver


def write_module(path: Path, name: str, *deps: str) -> Path:
    path.mkdir(parents=True)
    lines = [f"name: {name}"]
    if deps:
        lines.append("modules:")
        lines.extend(f"  - name: {dep}" for dep in deps)
    (path / "manifest.yaml").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestLocalModuleStore:
    def test_satisfies_protocols(self) -> None:
        assert isinstance(LocalModuleStore(), ModuleStore)
        assert isinstance(FakeModuleStore(), ModuleStore)
        assert isinstance(FakeVersionResolver(), VersionResolver)

    def test_reads_manifest_from_file_uri(self, tmp_path: Path) -> None:
        module_dir = write_module(tmp_path / "base", "github.com/example/base", "github.com/example/dep")

        manifest = LocalModuleStore().manifest(module_dir.as_uri(), "local")

        assert manifest.name == "github.com/example/base"
        assert [m.name for m in manifest.modules] == ["github.com/example/dep"]

    def test_get_fs_accepts_bare_paths(self, tmp_path: Path) -> None:
        module_dir = write_module(tmp_path / "base", "github.com/example/base")
        assert LocalModuleStore().get_fs(str(module_dir), "local") == module_dir

    def test_remote_uri_is_rejected(self) -> None:
        with pytest.raises(CollaboratorFailure, match="not a local module path"):
            LocalModuleStore().manifest("https://github.com/example/base", "v1.0.0")

    def test_missing_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "empty").mkdir()
        with pytest.raises(CollaboratorFailure, match="does not exist"):
            LocalModuleStore().manifest((tmp_path / "empty").as_uri(), "local")

    def test_resolves_local_replacements(self, tmp_path: Path) -> None:
        base = write_module(tmp_path / "base", "github.com/example/base", "github.com/example/dep")
        dep = write_module(tmp_path / "dep", "github.com/example/dep")
        project = ProjectManifest(
            name="svc",
            modules=[ModuleRequest(name="github.com/example/base")],
            replacements={
                "github.com/example/base": base.as_uri(),
                "github.com/example/dep": str(dep),
            },
        )

        modules = Resolver(
            store=LocalModuleStore(),
            version_resolver=FakeVersionResolver(),
            project=project,
            cache=ResolutionCache(root=tmp_path / "cache"),
        ).resolve()

        assert [(m.name, m.version) for m in modules] == [
            ("github.com/example/base", "local"),
            ("github.com/example/dep", "local"),
        ]

    def test_frozen_lockfile_rejects_resolved_local_replacement(self, tmp_path: Path) -> None:
        module_dir = write_module(tmp_path / "mod", "github.com/example/base")
        project = ProjectManifest(
            name="svc",
            modules=[ModuleRequest(name="github.com/example/base")],
            replacements={"github.com/example/base": str(module_dir)},
        )
        modules = Resolver(
            store=LocalModuleStore(),
            version_resolver=FakeVersionResolver(),
            project=project,
            cache=ResolutionCache(root=tmp_path / "cache"),
        ).resolve()

        lock = Lockfile.from_modules("0.4.0", modules)
        assert lock.modules[0].url == module_dir.as_uri()

        frozen = ProjectManifest(name="svc", modules=[ModuleRequest(name="github.com/example/base")])
        with pytest.raises(NonDeterministicReplacement) as excinfo:
            use_modules_from_lock(frozen, lock)
        assert excinfo.value.module == "github.com/example/base"
