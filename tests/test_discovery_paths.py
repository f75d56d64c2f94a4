"""Tests for manifest discovery and secret directory resolution."""

from __future__ import annotations

import io
import os

import pytest

from vault_manifests.errors import ConfigurationError, DiscoveryError
from vault_manifests.kube.discovery import (
    discover_documents,
    list_files,
    read_files_as_manifests,
    read_manifest_data,
)
from vault_manifests.paths import detect_git_path, resolve_secret_dir

CONFIG_MAP = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: {name}\n"

# ── list_files ───────────────────────────────────────────────────────────


class TestListFiles:
    def test_recursive_sorted(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "z.yaml").write_text("")
        (tmp_path / "a.yml").write_text("")
        (tmp_path / "c.json").write_text("{}")
        (tmp_path / "notes.txt").write_text("")
        files = list_files(str(tmp_path))
        assert [os.path.relpath(f, tmp_path) for f in files] == [
            "a.yml",
            "c.json",
            os.path.join("b", "z.yaml"),
        ]

    def test_single_file(self, tmp_path):
        path = tmp_path / "one.yaml"
        path.write_text("")
        assert list_files(str(path)) == [str(path)]

    def test_single_file_wrong_extension(self, tmp_path):
        path = tmp_path / "one.txt"
        path.write_text("")
        assert list_files(str(path)) == []

    def test_missing_path(self, tmp_path):
        with pytest.raises(DiscoveryError, match="could not access"):
            list_files(str(tmp_path / "absent"))


# ── read_manifest_data ───────────────────────────────────────────────────


class TestReadManifestData:
    def test_multi_document_stream(self):
        stream = io.StringIO(
            CONFIG_MAP.format(name="a") + "---\n" + CONFIG_MAP.format(name="b")
        )
        docs = read_manifest_data(stream)
        assert [d["metadata"]["name"] for d in docs] == ["a", "b"]

    def test_empty_documents_dropped(self):
        stream = io.StringIO("---\n" + CONFIG_MAP.format(name="a") + "---\n---\n")
        assert len(read_manifest_data(stream)) == 1

    def test_json_document(self):
        stream = io.StringIO('{"kind": "ConfigMap", "metadata": {"name": "j"}}')
        assert read_manifest_data(stream)[0]["metadata"]["name"] == "j"

    def test_non_mapping_document(self):
        with pytest.raises(DiscoveryError, match="expected a mapping"):
            read_manifest_data(io.StringIO("- a\n- b\n"), source="list.yaml")

    def test_invalid_yaml(self):
        with pytest.raises(DiscoveryError, match="could not parse"):
            read_manifest_data(io.StringIO("kind: [unclosed\n"))


# ── read_files_as_manifests / discover_documents ─────────────────────────


class TestDiscoverDocuments:
    def test_directory(self, tmp_path):
        (tmp_path / "01.yaml").write_text(CONFIG_MAP.format(name="first"))
        (tmp_path / "02.yaml").write_text(
            CONFIG_MAP.format(name="second") + "---\n" + CONFIG_MAP.format(name="third")
        )
        docs = discover_documents(str(tmp_path))
        assert [d["metadata"]["name"] for d in docs] == ["first", "second", "third"]

    def test_stdin(self):
        docs = discover_documents("-", stdin=io.StringIO(CONFIG_MAP.format(name="in")))
        assert docs[0]["metadata"]["name"] == "in"

    def test_stdin_without_stream(self):
        with pytest.raises(DiscoveryError, match="standard input"):
            discover_documents("-")

    def test_no_files(self, tmp_path):
        with pytest.raises(DiscoveryError, match="no YAML or JSON files were found"):
            discover_documents(str(tmp_path))

    def test_errors_aggregated(self, tmp_path):
        (tmp_path / "good.yaml").write_text(CONFIG_MAP.format(name="ok"))
        (tmp_path / "bad1.yaml").write_text("- not\n- a mapping\n")
        (tmp_path / "bad2.yaml").write_text("kind: [unclosed\n")
        with pytest.raises(DiscoveryError) as exc_info:
            discover_documents(str(tmp_path))
        message = str(exc_info.value)
        assert message.startswith("could not read YAML/JSON files:\n")
        assert "bad1.yaml" in message
        assert "bad2.yaml" in message

    def test_read_files_collects_every_error(self, tmp_path):
        good = tmp_path / "good.yaml"
        good.write_text(CONFIG_MAP.format(name="ok"))
        manifests, errors = read_files_as_manifests(
            [str(tmp_path / "missing.yaml"), str(good), str(tmp_path / "missing2.yaml")]
        )
        assert [m["metadata"]["name"] for m in manifests] == ["ok"]
        assert len(errors) == 2
        assert all(isinstance(e, DiscoveryError) for e in errors)


# ── Secret directory ─────────────────────────────────────────────────────


class TestDetectGitPath:
    def test_finds_nearest_git(self, tmp_path):
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "apps" / "web"
        nested.mkdir(parents=True)
        assert detect_git_path(str(nested)) == str(tmp_path / ".git")

    def test_git_file(self, tmp_path):
        (tmp_path / ".git").write_text("gitdir: /elsewhere\n")
        assert detect_git_path(str(tmp_path)) == str(tmp_path / ".git")

    def test_no_repository(self, tmp_path, monkeypatch):
        monkeypatch.setattr("vault_manifests.paths.os.path.exists", lambda p: False)
        with pytest.raises(ConfigurationError, match="could not find a Git repository"):
            detect_git_path(str(tmp_path))


class TestResolveSecretDir:
    def test_empty_uses_cwd(self):
        assert resolve_secret_dir("", "/work/app") == os.path.normpath("/work/app")
        assert resolve_secret_dir(None, "/work/app") == os.path.normpath("/work/app")

    def test_absolute_unchanged(self):
        assert resolve_secret_dir("/etc/secrets/", "/work") == os.path.normpath("/etc/secrets")

    def test_relative_joined_with_cwd(self):
        assert resolve_secret_dir("secrets/../dec", "/work") == os.path.normpath("/work/dec")

    def test_git_root_marker(self):
        detector = lambda cwd: "/repo/.git"  # noqa: E731
        assert resolve_secret_dir("GIT_ROOT/secrets", "/repo/apps/web", detector) == (
            os.path.normpath("/repo/secrets")
        )

    def test_git_root_alone(self):
        detector = lambda cwd: "/repo/.git"  # noqa: E731
        assert resolve_secret_dir("GIT_ROOT", "/repo/apps", detector) == os.path.normpath("/repo")

    def test_git_root_detection_failure_propagates(self):
        def detector(cwd):
            raise ConfigurationError("no git")

        with pytest.raises(ConfigurationError, match="no git"):
            resolve_secret_dir("GIT_ROOT/x", "/tmp", detector)
