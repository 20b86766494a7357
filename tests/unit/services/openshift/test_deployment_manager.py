"""Unit tests for DeploymentManager."""

from __future__ import annotations

import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from openshift_testkit.integrations.openshift.exceptions import (
    ConfigurationError,
    ExternalProcessError,
)
from openshift_testkit.services.openshift.deployment_manager import (
    DeployedResourceSet,
    DeploymentManager,
    find_native_binary,
    load_manifest,
)

MANIFEST = """\
apiVersion: v1
kind: List
items:
  - apiVersion: image.openshift.io/v1
    kind: ImageStream
    metadata:
      name: hello
  - apiVersion: image.openshift.io/v1
    kind: ImageStream
    metadata:
      name: openjdk-17
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: hello
spec:
  template:
    spec:
      containers:
        - name: hello
          image: hello:latest
"""


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    path = tmp_path / "openshift.yml"
    path.write_text(MANIFEST)
    return path


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    build = tmp_path / "target"
    (build / "quarkus-app" / "lib").mkdir(parents=True)
    (build / "quarkus-app" / "quarkus-run.jar").write_text("jar")
    (build / "quarkus-app" / "lib" / "dep.jar").write_text("dep")
    return build


@pytest.mark.unit
class TestLoadManifest:
    """Test manifest parsing."""

    def test_flattens_lists(self, manifest: Path) -> None:
        kinds = [r["kind"] for r in load_manifest(manifest)]

        assert kinds == ["ImageStream", "ImageStream", "Deployment"]

    def test_skips_empty_documents(self, tmp_path: Path) -> None:
        path = tmp_path / "m.yml"
        path.write_text("---\nkind: Service\nmetadata:\n  name: a\n---\n")

        assert load_manifest(path) == [{"kind": "Service", "metadata": {"name": "a"}}]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Missing manifest"):
            load_manifest(tmp_path / "absent.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yml"
        path.write_text("kind: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Failed to parse manifest"):
            load_manifest(path)


@pytest.mark.unit
class TestFindNativeBinary:
    """Test native executable discovery."""

    def test_finds_runner(self, build_dir: Path) -> None:
        runner = build_dir / "hello-1.0-runner"
        runner.write_text("elf")

        assert find_native_binary(build_dir) == runner

    def test_jvm_build(self, build_dir: Path) -> None:
        assert find_native_binary(build_dir) is None

    def test_missing_dir(self, tmp_path: Path) -> None:
        assert find_native_binary(tmp_path / "absent") is None


@pytest.mark.unit
class TestDeploymentManager:
    """Test DeploymentManager."""

    def test_apply(self, mock_oc: MagicMock, manifest: Path) -> None:
        deployed = DeploymentManager(mock_oc).apply(manifest)

        mock_oc.apply.assert_called_once_with(manifest)
        assert deployed == DeployedResourceSet(manifest=manifest, namespace="ts-test")

    def test_apply_missing_manifest(self, mock_oc: MagicMock, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="quarkus-openshift extension"):
            DeploymentManager(mock_oc).apply(tmp_path / "openshift.yml")

        mock_oc.apply.assert_not_called()

    def test_apply_failure_propagates(self, mock_oc: MagicMock, manifest: Path) -> None:
        mock_oc.apply.side_effect = ExternalProcessError(["oc", "apply"], 1)

        with pytest.raises(ExternalProcessError):
            DeploymentManager(mock_oc).apply(manifest)

    def test_image_streams_to_await_skips_app(self, mock_oc: MagicMock, manifest: Path) -> None:
        names = DeploymentManager(mock_oc).image_streams_to_await(manifest, "hello")

        assert names == ["openjdk-17"]

    def test_build_from_archive(self, mock_oc: MagicMock, build_dir: Path) -> None:
        seen: dict[str, list[str]] = {}

        def start_build(app: str, *, from_archive: Path) -> None:
            assert from_archive.is_file()
            with tarfile.open(from_archive, "r:gz") as tar:
                seen["names"] = sorted(tar.getnames())
            seen["archive"] = [str(from_archive)]

        mock_oc.start_build.side_effect = start_build

        DeploymentManager(mock_oc).build_and_run("hello", build_dir)

        assert "target/quarkus-app/quarkus-run.jar" in seen["names"]
        assert "target/quarkus-app/lib/dep.jar" in seen["names"]
        assert all(name.startswith("target") for name in seen["names"])
        assert not Path(seen["archive"][0]).exists()

    def test_archive_removed_when_build_fails(self, mock_oc: MagicMock, build_dir: Path) -> None:
        archives: list[Path] = []

        def start_build(app: str, *, from_archive: Path) -> None:
            archives.append(from_archive)
            raise ExternalProcessError(["oc", "start-build"], 1)

        mock_oc.start_build.side_effect = start_build

        with pytest.raises(ExternalProcessError):
            DeploymentManager(mock_oc).build_and_run("hello", build_dir)

        assert len(archives) == 1
        assert not archives[0].exists()

    def test_build_from_native_binary(self, mock_oc: MagicMock, build_dir: Path) -> None:
        runner = build_dir / "hello-1.0-runner"
        runner.write_text("elf")

        DeploymentManager(mock_oc).build_and_run("hello", build_dir)

        mock_oc.start_build.assert_called_once_with("hello", from_file=runner)

    def test_undeploy(self, mock_oc: MagicMock, manifest: Path) -> None:
        assert DeploymentManager(mock_oc).undeploy(manifest) is True
        mock_oc.delete.assert_called_once_with(manifest)

    def test_undeploy_resource_set(self, mock_oc: MagicMock, manifest: Path) -> None:
        deployed = DeployedResourceSet(manifest=manifest, namespace="ts-test")

        assert DeploymentManager(mock_oc).undeploy(deployed) is True
        mock_oc.delete.assert_called_once_with(manifest)

    def test_undeploy_twice(self, mock_oc: MagicMock, manifest: Path) -> None:
        manager = DeploymentManager(mock_oc)

        assert manager.undeploy(manifest) is True
        assert manager.undeploy(manifest) is True
        assert mock_oc.delete.call_count == 2

    def test_undeploy_failure_is_reported(self, mock_oc: MagicMock, manifest: Path) -> None:
        mock_oc.delete.side_effect = ExternalProcessError(["oc", "delete"], 1)

        assert DeploymentManager(mock_oc).undeploy(manifest) is False

    def test_apply_image_overrides(self, mock_oc: MagicMock, manifest: Path) -> None:
        replaced = DeploymentManager(mock_oc).apply_image_overrides(
            manifest, {"hello:latest": "mirror.example.com/hello:1.0"}
        )

        assert replaced == ["hello:latest"]
        assert "mirror.example.com/hello:1.0" in manifest.read_text()
