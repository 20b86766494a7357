"""Test suite configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "TS_"
TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

DEFAULT_BUILD_DIR = Path("target")
DEFAULT_MANIFEST = DEFAULT_BUILD_DIR / "kubernetes" / "openshift.yml"
DEFAULT_METADATA = DEFAULT_BUILD_DIR / "app-metadata.properties"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def load_image_overrides(path: Path) -> dict[str, str]:
    """Read an image override file.

    Each non-empty, non-comment line maps an image reference found in the
    generated manifest to its replacement: ``original=replacement``.

    Raises:
        ValueError: If a line has no ``=`` separator.
    """
    overrides: dict[str, str] = {}
    for number, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        original, sep, replacement = line.partition("=")
        if not sep:
            raise ValueError(f"{path}:{number}: expected 'original=replacement'")
        overrides[original.strip()] = replacement.strip()
    return overrides


class TestkitConfig(BaseModel):
    """Global configuration of the OpenShift test lifecycle.

    Injectable into tests, hook methods and failure actions.
    """

    __test__ = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    ephemeral_namespaces: bool = False
    retain_on_failure: bool = False

    namespace: str | None = None
    kube_context: str | None = None
    kubeconfig: str | None = None
    api_retry_attempts: int = 1

    oc_binary: str | None = None
    command_timeout: float = 1800

    build_dir: Path = DEFAULT_BUILD_DIR
    manifest_path: Path = DEFAULT_MANIFEST
    metadata_path: Path = DEFAULT_METADATA
    image_overrides: dict[str, str] = Field(default_factory=dict)

    await_timeout: float = 300
    await_interval: float = 1.0
    missing_grace: float = 60
    route_probe: bool = True
    probe_timeout: float = 10

    disabled_failure_actions: frozenset[str] = frozenset()

    log_level: Literal["debug", "info", "warning", "error"] = "info"
    log_json: bool = False

    @field_validator("await_timeout", "await_interval", "command_timeout", "probe_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("missing_grace")
    @classmethod
    def validate_missing_grace(cls, v: float) -> float:
        """Validate the missing-resource grace period is non-negative."""
        if v < 0:
            raise ValueError("missing_grace must be non-negative")
        return v

    @field_validator("api_retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is non-negative."""
        if v < 0:
            raise ValueError("api_retry_attempts must be non-negative")
        return v

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        return str(Path(v).expanduser()) if v else v

    @classmethod
    def from_env(
        cls,
        base_config: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
    ) -> TestkitConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            TS_USE_EPHEMERAL_NAMESPACES: Run every test class in a fresh project
            TS_RETAIN_ON_FAILURE: Keep resources of failed test classes
            TS_NAMESPACE: Namespace used when ephemeral namespaces are off
            TS_KUBE_CONTEXT: kubeconfig context
            TS_KUBECONFIG: kubeconfig path
            TS_OC_BINARY: Path to the oc binary
            TS_BUILD_DIR: Build output directory
            TS_MANIFEST: Generated OpenShift manifest
            TS_APP_METADATA: Generated application metadata properties
            TS_AWAIT_TIMEOUT: Await timeout in seconds
            TS_AWAIT_INTERVAL: Await poll interval in seconds
            TS_AWAIT_MISSING_GRACE: Seconds a missing resource is tolerated
            TS_ROUTE_PROBE: Probe the known endpoint when awaiting the route
            TS_COMMAND_TIMEOUT: Timeout of external commands in seconds
            TS_IMAGE_OVERRIDES: File of ``original=replacement`` image lines
            TS_DISABLED_FAILURE_ACTIONS: Comma separated failure action names
            TS_LOG_LEVEL: debug, info, warning or error
            TS_LOG_JSON: Emit JSON log lines
        """
        env = os.environ if environ is None else environ
        config_dict = base_config.copy() if base_config else {}

        bool_vars = {
            "USE_EPHEMERAL_NAMESPACES": "ephemeral_namespaces",
            "RETAIN_ON_FAILURE": "retain_on_failure",
            "ROUTE_PROBE": "route_probe",
            "LOG_JSON": "log_json",
        }
        for var, field in bool_vars.items():
            if (value := env.get(ENV_PREFIX + var)) is not None:
                config_dict[field] = _parse_bool(value)

        plain_vars = {
            "NAMESPACE": "namespace",
            "KUBE_CONTEXT": "kube_context",
            "KUBECONFIG": "kubeconfig",
            "OC_BINARY": "oc_binary",
            "BUILD_DIR": "build_dir",
            "MANIFEST": "manifest_path",
            "APP_METADATA": "metadata_path",
            "AWAIT_TIMEOUT": "await_timeout",
            "AWAIT_INTERVAL": "await_interval",
            "AWAIT_MISSING_GRACE": "missing_grace",
            "COMMAND_TIMEOUT": "command_timeout",
        }
        for var, field in plain_vars.items():
            if value := env.get(ENV_PREFIX + var):
                config_dict[field] = value

        if level := env.get(ENV_PREFIX + "LOG_LEVEL"):
            config_dict["log_level"] = level.lower()

        if disabled := env.get(ENV_PREFIX + "DISABLED_FAILURE_ACTIONS"):
            config_dict["disabled_failure_actions"] = frozenset(
                name.strip() for name in disabled.split(",") if name.strip()
            )

        if overrides_file := env.get(ENV_PREFIX + "IMAGE_OVERRIDES"):
            config_dict["image_overrides"] = load_image_overrides(Path(overrides_file))

        return cls.model_validate(config_dict)
