"""Tests for modforge.configuration manifests and lockfiles."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from pydantic import ValidationError

from modforge.configuration import (
    LOCKFILE_NAME,
    Argument,
    ArgumentType,
    Lockfile,
    ModuleManifest,
    ModuleRequest,
    ProjectManifest,
    load_lockfile,
    load_project_manifest,
    parse_module_manifest,
    save_lockfile,
    validate_arguments,
)
from modforge.errors import ManifestError
from modforge.modules.models import Module


class TestModuleRequest:
    def test_deprecated_https_url_becomes_name(self) -> None:
        request = ModuleRequest(url="https://github.com/example/base.git")
        assert request.name == "github.com/example/base"

    def test_deprecated_scp_url_becomes_name(self) -> None:
        request = ModuleRequest(url="git@github.com:example/base.git")
        assert request.name == "github.com/example/base"

    def test_name_is_required(self) -> None:
        with pytest.raises(ValidationError):
            ModuleRequest(version=">=1.0.0")

    def test_prerelease_flag_means_rc_channel(self) -> None:
        assert ModuleRequest(name="a", prerelease=True).requested_channel == "rc"
        assert ModuleRequest(name="a", channel="beta", prerelease=True).requested_channel == "beta"
        assert ModuleRequest(name="a").requested_channel == ""


class TestProjectManifest:
    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "modforge.yaml"
        path.write_text(
            "name: testing-service\n"
            "modules:\n"
            "  - name: github.com/example/base\n"
            "    version: '>=0.5.0'\n"
            "replacements:\n"
            "  github.com/example/base: file:///src/base\n",
            encoding="utf-8",
        )

        manifest = load_project_manifest(path)

        assert manifest.name == "testing-service"
        assert manifest.modules[0].version == ">=0.5.0"
        assert manifest.replacements == {"github.com/example/base": "file:///src/base"}
        assert manifest.arguments == {}

    def test_invalid_name(self, tmp_path: Path) -> None:
        path = tmp_path / "modforge.yaml"
        path.write_text("name: Not Valid\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="Invalid project manifest"):
            load_project_manifest(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "modforge.yaml"
        path.write_text("name: [unclosed\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="Failed to parse"):
            load_project_manifest(path)

    def test_use_prerelease_moves_modules_to_rc(self) -> None:
        manifest = ProjectManifest(
            name="svc", modules=[ModuleRequest(name="a", version=">=1.0.0")]
        )
        manifest.use_prerelease()
        assert manifest.modules[0].channel == "rc"
        assert manifest.modules[0].version == ""


class TestModuleManifest:
    def test_parse_with_aliases(self) -> None:
        source = io.StringIO(
            "name: github.com/example/base\n"
            "type: templates,extension\n"
            "modforgeVersion: '>=0.4.0'\n"
            "modules:\n"
            "  - name: github.com/example/dep\n"
            "arguments:\n"
            "  service:\n"
            "    type: string\n"
            "    required: true\n"
            "postRunCommand:\n"
            "  - command: make fmt\n"
        )

        manifest = parse_module_manifest(source, "github.com/example/base")

        assert manifest.modforge_version == ">=0.4.0"
        assert manifest.type == ["templates", "extension"]
        assert manifest.modules[0].name == "github.com/example/dep"
        assert manifest.arguments["service"].required is True
        assert manifest.post_run_commands[0].command == "make fmt"

    def test_name_must_match_import_path(self) -> None:
        source = io.StringIO("name: github.com/example/other\n")
        with pytest.raises(ManifestError, match="declares its import path"):
            parse_module_manifest(source, "github.com/example/base")

    def test_type_defaults_to_empty(self) -> None:
        assert ModuleManifest(name="a", type=None).type == []


class TestArguments:
    def test_default_must_match_type(self) -> None:
        with pytest.raises(ValidationError):
            Argument(type=ArgumentType.INTEGER, default="three")

    def test_validate_fills_defaults_and_reports_all_problems(self) -> None:
        declared = {
            "name": Argument(required=True),
            "replicas": Argument(type=ArgumentType.INTEGER, default=1),
            "tier": Argument(values=["free", "paid"]),
            "debug": Argument(type=ArgumentType.BOOLEAN),
        }

        assert validate_arguments(declared, {"name": "svc"}, module="m") == {
            "name": "svc",
            "replicas": 1,
        }

        with pytest.raises(ManifestError) as excinfo:
            validate_arguments(declared, {"tier": "gold", "debug": "yes"}, module="m")
        message = str(excinfo.value)
        assert "'name' is required" in message
        assert "not one of free, paid" in message
        assert "not of type boolean" in message


class TestLockfile:
    def test_missing_lockfile_is_none(self, tmp_path: Path) -> None:
        assert load_lockfile(tmp_path) is None

    def test_save_and_load(self, tmp_path: Path) -> None:
        lock = Lockfile.from_modules(
            "0.4.0",
            [
                Module(name="b", uri="https://b", version="v2.0.0"),
                Module(name="a", uri="https://a", version="v1.0.0"),
            ],
        )

        path = save_lockfile(tmp_path, lock)
        loaded = load_lockfile(tmp_path)

        assert path == tmp_path / LOCKFILE_NAME
        assert loaded is not None
        assert loaded.version == "0.4.0"
        assert [m.name for m in loaded.modules] == ["a", "b"]
        assert loaded.get_module("b").version == "v2.0.0"
        assert loaded.get_module("c") is None

    def test_invalid_lockfile(self, tmp_path: Path) -> None:
        (tmp_path / LOCKFILE_NAME).write_text("modules:\n  - url: x\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="Invalid lockfile"):
            load_lockfile(tmp_path)
