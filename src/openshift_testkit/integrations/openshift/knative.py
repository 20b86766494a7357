"""Knative Serving client adapter.

Serverless applications are exposed through Knative routes instead of
OpenShift routes; this adapter reads them through the same API connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from openshift_testkit.integrations.openshift.models import KnativeRouteSummary

if TYPE_CHECKING:
    from openshift_testkit.integrations.openshift.client import OpenShiftClient

KNATIVE_GROUP = "serving.knative.dev"
KNATIVE_VERSION = "v1"
KNATIVE_ROUTE_PLURAL = "routes"
KNATIVE_SERVICE_PLURAL = "services"


class KnativeClient:
    """Read access to Knative Serving resources in the working namespace."""

    def __init__(self, client: OpenShiftClient) -> None:
        self._client = client

    @property
    def namespace(self) -> str:
        return self._client.namespace

    def _get(self, plural: str, name: str) -> dict[str, Any]:
        try:
            result: dict[str, Any] = self._client.custom_objects.get_namespaced_custom_object(
                KNATIVE_GROUP, KNATIVE_VERSION, self.namespace, plural, name
            )
        except Exception as e:
            raise self._client.translate_api_exception(
                e, resource_type=f"knative {plural}", resource_name=name, namespace=self.namespace
            ) from e
        return result

    def get_route(self, name: str) -> KnativeRouteSummary:
        """Get a Knative Route by name.

        Raises:
            OpenShiftNotFoundError: If the route does not exist.
        """
        return KnativeRouteSummary.from_k8s_object(self._get(KNATIVE_ROUTE_PLURAL, name))

    def get_service(self, name: str) -> dict[str, Any]:
        """Get a raw Knative Service by name."""
        return self._get(KNATIVE_SERVICE_PLURAL, name)
