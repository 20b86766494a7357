"""Shared pytest fixtures for openshift_testkit tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from openshift_testkit.core.config import TestkitConfig
from openshift_testkit.core.metadata import AppMetadata

pytest_plugins = ["pytester"]


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    # Clear any TS_ prefixed environment variables
    for key in list(os.environ.keys()):
        if key.startswith("TS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def testkit_settings() -> TestkitConfig:
    """Configuration with short waits."""
    return TestkitConfig(await_timeout=5, await_interval=1, missing_grace=2)


@pytest.fixture
def metadata() -> AppMetadata:
    """Metadata of an application named ``hello``."""
    return AppMetadata(app_name="hello", http_root="/api", known_endpoint="/health")
