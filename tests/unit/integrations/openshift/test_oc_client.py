"""Unit tests for the oc CLI client."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from openshift_testkit.core.config import TestkitConfig
from openshift_testkit.integrations.openshift.command import CommandResult, CommandRunner
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError
from openshift_testkit.integrations.openshift.oc_client import OcBinaryNotFoundError, OcClient


@pytest.fixture
def mock_runner() -> MagicMock:
    runner = MagicMock()
    runner.run.return_value = CommandResult(args=(), returncode=0, output="")
    return runner


@pytest.fixture
def oc(mock_runner: MagicMock) -> OcClient:
    with patch("shutil.which", return_value="/usr/bin/oc"):
        return OcClient(mock_runner, namespace="ts-test")


@pytest.mark.unit
class TestOcClientBinary:
    """Test locating the oc binary."""

    def test_binary_from_path(self, mock_runner: MagicMock) -> None:
        with patch("shutil.which", return_value="/usr/local/bin/oc") as which:
            oc = OcClient(mock_runner)

        which.assert_called_once_with("oc")
        oc.run("version")
        mock_runner.run.assert_called_once_with(["/usr/local/bin/oc", "version"], check=True)

    def test_explicit_binary_path(self, mock_runner: MagicMock, temp_dir: Path) -> None:
        binary = temp_dir / "oc"
        binary.write_text("#!/bin/sh\n")

        oc = OcClient(mock_runner, binary_path=str(binary))
        oc.run("version")

        assert mock_runner.run.call_args.args[0][0] == str(binary.resolve())

    def test_missing_binary(self, mock_runner: MagicMock) -> None:
        with patch("shutil.which", return_value=None):
            with pytest.raises(OcBinaryNotFoundError):
                OcClient(mock_runner)

    def test_missing_binary_is_configuration_error(self, mock_runner: MagicMock) -> None:
        with patch("shutil.which", return_value=None):
            with pytest.raises(ConfigurationError):
                OcClient(mock_runner, binary_path="/nonexistent/oc")


@pytest.mark.unit
class TestOcClientCommands:
    """Test command lines built by OcClient."""

    def test_apply(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.apply(Path("target/kubernetes/openshift.yml"))

        mock_runner.run.assert_called_once_with(
            ["/usr/bin/oc", "apply", "-f", "target/kubernetes/openshift.yml", "-n", "ts-test"],
            check=True,
        )

    def test_delete_ignores_not_found(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.delete(Path("extra.yml"))

        args = mock_runner.run.call_args.args[0]
        assert args[1:4] == ["delete", "-f", "extra.yml"]
        assert "--ignore-not-found" in args
        assert args[-2:] == ["-n", "ts-test"]

    def test_new_project_does_not_switch_context(
        self, oc: OcClient, mock_runner: MagicMock
    ) -> None:
        oc.new_project("ts-abcdefghij")

        mock_runner.run.assert_called_once_with(
            ["/usr/bin/oc", "new-project", "ts-abcdefghij", "--skip-config-write"], check=True
        )

    def test_delete_project(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.delete_project("ts-abcdefghij")

        mock_runner.run.assert_called_once_with(
            ["/usr/bin/oc", "delete", "project", "ts-abcdefghij", "--ignore-not-found"],
            check=True,
        )

    def test_start_build_from_archive(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.start_build("hello", from_archive=Path("/tmp/hello.tar.gz"))

        mock_runner.run.assert_called_once_with(
            [
                "/usr/bin/oc",
                "start-build",
                "hello",
                "--from-archive=/tmp/hello.tar.gz",
                "--follow",
                "-n",
                "ts-test",
            ],
            check=True,
        )

    def test_start_build_from_file(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.start_build("hello", from_file=Path("target/hello-runner"))

        assert "--from-file=target/hello-runner" in mock_runner.run.call_args.args[0]

    def test_start_build_requires_one_source(self, oc: OcClient) -> None:
        with pytest.raises(ValueError):
            oc.start_build("hello")
        with pytest.raises(ValueError):
            oc.start_build("hello", from_file=Path("a"), from_archive=Path("b"))

    def test_diagnostic_commands_do_not_check(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.status()
        oc.get("all")
        oc.logs("hello-1-abcde")

        for call in mock_runner.run.call_args_list:
            assert call.kwargs == {"check": False}

    def test_with_namespace(self, oc: OcClient, mock_runner: MagicMock) -> None:
        other = oc.with_namespace("other")
        other.apply(Path("m.yml"))

        assert other.namespace == "other"
        assert oc.namespace == "ts-test"
        assert mock_runner.run.call_args.args[0][-2:] == ["-n", "other"]

    def test_without_namespace(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.with_namespace(None).apply(Path("m.yml"))

        assert "-n" not in mock_runner.run.call_args.args[0]


@pytest.mark.unit
class TestOcClientClusterSelection:
    """Test that every command targets the configured cluster."""

    @pytest.fixture
    def settings(self) -> TestkitConfig:
        return TestkitConfig(kube_context="cluster-b", kubeconfig="/etc/kube/config")

    def test_from_config_passes_context_and_kubeconfig(self, settings: TestkitConfig) -> None:
        with (
            patch("shutil.which", return_value="/usr/bin/oc"),
            patch.object(CommandRunner, "run") as run,
        ):
            oc = OcClient.from_config(settings)
            oc.new_project("ts-abcdefghij")

        run.assert_called_once_with(
            [
                "/usr/bin/oc",
                "--kubeconfig=/etc/kube/config",
                "--context=cluster-b",
                "new-project",
                "ts-abcdefghij",
                "--skip-config-write",
            ],
            check=True,
        )

    def test_from_config_uses_command_timeout(self) -> None:
        with patch("shutil.which", return_value="/usr/bin/oc"):
            oc = OcClient.from_config(TestkitConfig(command_timeout=60), namespace="ts-test")

        assert oc._runner._timeout == 60
        assert oc.namespace == "ts-test"

    def test_namespaced_client_keeps_cluster(self, mock_runner: MagicMock) -> None:
        with patch("shutil.which", return_value="/usr/bin/oc"):
            oc = OcClient(mock_runner, kube_context="cluster-b", kubeconfig="/etc/kube/config")

        oc.with_namespace("ts-test").delete(Path("postgres.yml"))

        args = mock_runner.run.call_args.args[0]
        assert args[1:3] == ["--kubeconfig=/etc/kube/config", "--context=cluster-b"]
        assert args[-2:] == ["-n", "ts-test"]

    def test_default_cluster_adds_no_flags(self, oc: OcClient, mock_runner: MagicMock) -> None:
        oc.status()

        args = mock_runner.run.call_args.args[0]
        assert not any(a.startswith(("--context", "--kubeconfig")) for a in args)
