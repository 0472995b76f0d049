"""Tests for cargo metadata loading."""

from types import SimpleNamespace

import pytest

from rust_grapher import metadata as metadata_module
from rust_grapher.errors import MetadataError
from rust_grapher.metadata import (
    dependency_kind,
    load_metadata,
    parse_metadata,
    read_metadata_file,
    run_cargo_metadata,
)
from rust_grapher.models import DepKind

APP_ID = "path+file:///ws/app#0.1.0"
CORE_ID = "path+file:///ws/core#app-core@0.1.0"


class TestParse:
    """Decoding the ``cargo metadata`` document."""

    def test_fixture_packages_and_members(self, metadata_path):
        meta = read_metadata_file(metadata_path)

        assert len(meta.packages) == 7
        assert meta.workspace_members == [APP_ID, CORE_ID]
        assert meta.has_resolve
        assert meta.packages[APP_ID].name == "app"
        assert meta.packages[APP_ID].is_workspace_member
        serde = next(p for p in meta.packages.values() if p.name == "serde")
        assert serde.version == "1.0.200"
        assert not serde.is_workspace_member

    def test_fixture_dependency_kinds(self, metadata_path):
        meta = read_metadata_file(metadata_path)
        names = {pid: fact.name for pid, fact in meta.packages.items()}

        app = [(names[pid], kind) for pid, kind in meta.packages[APP_ID].dependencies]
        assert app == [
            ("app-core", DepKind.NORMAL),
            ("serde", DepKind.NORMAL),
            ("pretty_assertions", DepKind.DEV),
        ]
        core = dict((names[pid], kind) for pid, kind in meta.packages[CORE_ID].dependencies)
        assert core == {"serde": DepKind.NORMAL, "cc": DepKind.BUILD}

    @pytest.mark.parametrize(
        "dep,expected",
        [
            ({}, DepKind.NORMAL),
            ({"dep_kinds": []}, DepKind.NORMAL),
            ({"dep_kinds": [{"kind": None}]}, DepKind.NORMAL),
            ({"dep_kinds": [{"kind": "dev"}, {"kind": None}]}, DepKind.DEV),
            ({"dep_kinds": [{"kind": "build"}]}, DepKind.BUILD),
            ({"dep_kinds": [{"kind": "unknown"}]}, DepKind.NORMAL),
        ],
    )
    def test_dependency_kind(self, dep, expected):
        assert dependency_kind(dep) == expected

    def test_missing_resolve(self):
        payload = {
            "packages": [{"id": "a", "name": "a", "version": "0.1.0"}],
            "workspace_members": ["a"],
            "resolve": None,
        }
        meta = parse_metadata(payload)
        assert not meta.has_resolve
        assert meta.packages["a"].dependencies == []

    def test_legacy_dependencies_list(self):
        payload = {
            "packages": [
                {"id": "a", "name": "a", "version": "0.1.0"},
                {"id": "b", "name": "b", "version": "0.2.0"},
            ],
            "workspace_members": ["a"],
            "resolve": {"nodes": [{"id": "a", "dependencies": ["b"]}]},
        }
        meta = parse_metadata(payload)
        assert meta.packages["a"].dependencies == [("b", DepKind.NORMAL)]

    def test_missing_packages_is_fatal(self):
        with pytest.raises(MetadataError, match="Malformed"):
            parse_metadata({"workspace_members": []})

    def test_package_without_name_is_fatal(self):
        with pytest.raises(MetadataError, match="Malformed package entry"):
            parse_metadata({"packages": [{"id": "a"}], "workspace_members": []})

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"packages": None},
            {"packages": ["a"]},
            {"packages": [], "workspace_members": 3},
            {"packages": [], "resolve": {"nodes": [None]}},
            {
                "packages": [{"id": "a", "name": "a"}],
                "resolve": {"nodes": [{"id": "a", "deps": [{"pkg": "a", "dep_kinds": ["dev"]}]}]},
            },
        ],
        ids=["not-an-object", "null-packages", "string-package", "bad-members", "null-node", "bad-dep-kind"],
    )
    def test_unexpected_shape_is_fatal(self, payload):
        with pytest.raises(MetadataError, match="Malformed cargo metadata"):
            parse_metadata(payload)


class TestFiles:
    """Reading saved metadata documents."""

    def test_invalid_json(self, temp_dir):
        path = temp_dir / "metadata.json"
        path.write_text("{not json")
        with pytest.raises(MetadataError, match="Invalid JSON"):
            read_metadata_file(path)

    def test_missing_file(self, temp_dir):
        with pytest.raises(MetadataError, match="Cannot read"):
            read_metadata_file(temp_dir / "absent.json")

    def test_load_prefers_metadata_file(self, metadata_path, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("cargo must not run")

        monkeypatch.setattr(metadata_module.subprocess, "run", fail)
        meta = load_metadata(metadata_file=metadata_path)
        assert len(meta.packages) == 7


class TestCargo:
    """Running ``cargo metadata`` as a subprocess."""

    def test_success(self, metadata_path, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return SimpleNamespace(returncode=0, stdout=metadata_path.read_text(), stderr="")

        monkeypatch.setattr(metadata_module.subprocess, "run", fake_run)
        meta = run_cargo_metadata(metadata_path.parent / "Cargo.toml")

        assert len(meta.packages) == 7
        cmd = calls[0]
        assert cmd[:4] == ["cargo", "metadata", "--format-version", "1"]
        assert cmd[-2] == "--manifest-path"
        assert cmd[-1].endswith("Cargo.toml")

    def test_nonzero_exit(self, monkeypatch):
        monkeypatch.setattr(
            metadata_module.subprocess,
            "run",
            lambda cmd, **kw: SimpleNamespace(returncode=101, stdout="", stderr="error: manifest not found\n"),
        )
        with pytest.raises(MetadataError, match="manifest not found"):
            run_cargo_metadata("missing/Cargo.toml")

    def test_cargo_not_installed(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(metadata_module.subprocess, "run", fake_run)
        with pytest.raises(MetadataError, match="not found on PATH"):
            run_cargo_metadata("Cargo.toml")

    def test_garbage_output(self, monkeypatch):
        monkeypatch.setattr(
            metadata_module.subprocess,
            "run",
            lambda cmd, **kw: SimpleNamespace(returncode=0, stdout="warning: something", stderr=""),
        )
        with pytest.raises(MetadataError, match="invalid JSON"):
            run_cargo_metadata("Cargo.toml")

