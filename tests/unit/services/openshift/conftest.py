"""Shared fixtures for OpenShift service tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from openshift_testkit.integrations.openshift.client import OpenShiftClient


@pytest.fixture
def mock_os_client() -> MagicMock:
    """Mock OpenShift client translating errors like the real one."""
    client = MagicMock()
    client.namespace = "ts-test"
    client.translate_api_exception.side_effect = OpenShiftClient.translate_api_exception
    return client


@pytest.fixture
def mock_oc() -> MagicMock:
    """Mock oc CLI client."""
    oc = MagicMock()
    oc.namespace = "ts-test"
    return oc

