"""OpenShift integration - API client, oc CLI wrapper and exceptions."""

from openshift_testkit.integrations.openshift.client import OpenShiftClient
from openshift_testkit.integrations.openshift.command import CommandResult, CommandRunner
from openshift_testkit.integrations.openshift.exceptions import (
    AwaitTimeoutError,
    ConfigurationError,
    DiagnosticActionError,
    ExternalProcessError,
    OpenShiftAuthError,
    OpenShiftConflictError,
    OpenShiftConnectionError,
    OpenShiftError,
    OpenShiftNotFoundError,
    OpenShiftValidationError,
    ResourceNeverReadyError,
)
from openshift_testkit.integrations.openshift.knative import KnativeClient
from openshift_testkit.integrations.openshift.oc_client import OcClient

__all__ = [
    "AwaitTimeoutError",
    "CommandResult",
    "CommandRunner",
    "ConfigurationError",
    "DiagnosticActionError",
    "ExternalProcessError",
    "KnativeClient",
    "OcClient",
    "OpenShiftAuthError",
    "OpenShiftClient",
    "OpenShiftConflictError",
    "OpenShiftConnectionError",
    "OpenShiftError",
    "OpenShiftNotFoundError",
    "OpenShiftValidationError",
    "ResourceNeverReadyError",
]
