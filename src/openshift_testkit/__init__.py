"""Lifecycle management for integration tests running against OpenShift.

A test class marked with ``@pytest.mark.openshift_test`` gets the application
under test deployed before its first test and cleaned up (or retained for
inspection) after its last one.
"""

from openshift_testkit.__version__ import __version__
from openshift_testkit.core.metadata import AppMetadata
from openshift_testkit.lifecycle.injection import ResourceKind, TestResource, WithName
from openshift_testkit.lifecycle.unit import (
    AdditionalResources,
    customize_application_deployment,
    customize_application_undeployment,
)
from openshift_testkit.services.openshift.diagnostics import FailureAction
from openshift_testkit.services.openshift.route_resolver import HttpClientConfig

__all__ = [
    "AdditionalResources",
    "AppMetadata",
    "FailureAction",
    "HttpClientConfig",
    "ResourceKind",
    "TestResource",
    "WithName",
    "__version__",
    "customize_application_deployment",
    "customize_application_undeployment",
]
