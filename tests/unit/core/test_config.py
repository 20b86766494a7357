"""Unit tests for the test suite configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from openshift_testkit.core.config import TestkitConfig, load_image_overrides


@pytest.mark.unit
class TestTestkitConfigDefaults:
    """Test default configuration values."""

    def test_defaults(self) -> None:
        config = TestkitConfig()

        assert config.ephemeral_namespaces is False
        assert config.retain_on_failure is False
        assert config.await_timeout == 300
        assert config.await_interval == 1.0
        assert config.missing_grace == 60
        assert config.manifest_path == Path("target/kubernetes/openshift.yml")
        assert config.metadata_path == Path("target/app-metadata.properties")
        assert config.image_overrides == {}

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            TestkitConfig(unknown=True)

    @pytest.mark.parametrize("field", ["await_timeout", "await_interval", "command_timeout"])
    def test_rejects_non_positive_durations(self, field: str) -> None:
        with pytest.raises(ValidationError):
            TestkitConfig(**{field: 0})

    def test_rejects_negative_grace(self) -> None:
        with pytest.raises(ValidationError):
            TestkitConfig(missing_grace=-1)

    def test_expands_kubeconfig(self) -> None:
        config = TestkitConfig(kubeconfig="~/.kube/config")

        assert not config.kubeconfig.startswith("~")

    def test_is_frozen(self) -> None:
        config = TestkitConfig()

        with pytest.raises(ValidationError):
            config.retain_on_failure = True


@pytest.mark.unit
class TestTestkitConfigFromEnv:
    """Test configuration from TS_ environment variables."""

    def test_empty_environment(self) -> None:
        assert TestkitConfig.from_env(environ={}) == TestkitConfig()

    @pytest.mark.parametrize("value", ["true", "1", "yes", "ON"])
    def test_boolean_flags(self, value: str) -> None:
        config = TestkitConfig.from_env(
            environ={"TS_USE_EPHEMERAL_NAMESPACES": value, "TS_RETAIN_ON_FAILURE": value}
        )

        assert config.ephemeral_namespaces is True
        assert config.retain_on_failure is True

    def test_false_boolean(self) -> None:
        config = TestkitConfig.from_env(environ={"TS_ROUTE_PROBE": "false"})

        assert config.route_probe is False

    def test_plain_values(self) -> None:
        config = TestkitConfig.from_env(
            environ={
                "TS_NAMESPACE": "team-a",
                "TS_MANIFEST": "build/openshift.yml",
                "TS_AWAIT_TIMEOUT": "60",
                "TS_AWAIT_INTERVAL": "0.5",
                "TS_LOG_LEVEL": "DEBUG",
            }
        )

        assert config.namespace == "team-a"
        assert config.manifest_path == Path("build/openshift.yml")
        assert config.await_timeout == 60
        assert config.await_interval == 0.5
        assert config.log_level == "debug"

    def test_disabled_failure_actions(self) -> None:
        config = TestkitConfig.from_env(
            environ={"TS_DISABLED_FAILURE_ACTIONS": "namespace-status, dump-routes,"}
        )

        assert config.disabled_failure_actions == frozenset({"namespace-status", "dump-routes"})

    def test_env_overrides_base_config(self) -> None:
        config = TestkitConfig.from_env(
            base_config={"namespace": "base", "retain_on_failure": True},
            environ={"TS_NAMESPACE": "env"},
        )

        assert config.namespace == "env"
        assert config.retain_on_failure is True

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TS_RETAIN_ON_FAILURE", "true")

        assert TestkitConfig.from_env().retain_on_failure is True

    def test_invalid_value(self) -> None:
        with pytest.raises(ValidationError):
            TestkitConfig.from_env(environ={"TS_AWAIT_TIMEOUT": "-5"})

    def test_image_overrides_file(self, temp_dir: Path) -> None:
        overrides = temp_dir / "overrides.txt"
        overrides.write_text("# mirrors\npostgres:15=mirror.local/postgres:15\n\n")

        config = TestkitConfig.from_env(environ={"TS_IMAGE_OVERRIDES": str(overrides)})

        assert config.image_overrides == {"postgres:15": "mirror.local/postgres:15"}


@pytest.mark.unit
class TestLoadImageOverrides:
    """Test parsing of image override files."""

    def test_rejects_line_without_separator(self, temp_dir: Path) -> None:
        overrides = temp_dir / "overrides.txt"
        overrides.write_text("postgres:15\n")

        with pytest.raises(ValueError, match="overrides.txt:1"):
            load_image_overrides(overrides)
