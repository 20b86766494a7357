"""OpenShift service module.

Managers that drive a test run against the cluster: deployment, namespaces,
additional resources, waits, route resolution and failure diagnostics.
"""

from openshift_testkit.services.openshift.additional_resources import (
    AdditionalResourceManager,
    AdditionalResources,
)
from openshift_testkit.services.openshift.await_util import AwaitSpec, AwaitUtil
from openshift_testkit.services.openshift.deployment_manager import (
    DeployedResourceSet,
    DeploymentManager,
)
from openshift_testkit.services.openshift.diagnostics import (
    FailureAction,
    FailureActionRegistry,
    FailureDiagnosticsRunner,
)
from openshift_testkit.services.openshift.namespace_manager import (
    EphemeralNamespace,
    NamespaceManager,
)
from openshift_testkit.services.openshift.openshift_util import OpenShiftUtil
from openshift_testkit.services.openshift.route_resolver import HttpClientConfig, RouteResolver

__all__ = [
    "AdditionalResourceManager",
    "AdditionalResources",
    "AwaitSpec",
    "AwaitUtil",
    "DeployedResourceSet",
    "DeploymentManager",
    "EphemeralNamespace",
    "FailureAction",
    "FailureActionRegistry",
    "FailureDiagnosticsRunner",
    "HttpClientConfig",
    "NamespaceManager",
    "OpenShiftUtil",
    "RouteResolver",
]
