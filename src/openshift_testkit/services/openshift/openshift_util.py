"""Higher-level cluster helpers for test code."""

from __future__ import annotations

from typing import TYPE_CHECKING

from openshift_testkit.integrations.openshift.client import (
    APPS_GROUP,
    APPS_VERSION,
    DEPLOYMENT_CONFIG_PLURAL,
)
from openshift_testkit.services.openshift.base import OpenShiftBaseManager

if TYPE_CHECKING:
    from openshift_testkit.core.metadata import AppMetadata
    from openshift_testkit.integrations.openshift.client import OpenShiftClient
    from openshift_testkit.integrations.openshift.models import PodSummary
    from openshift_testkit.services.openshift.await_util import AwaitUtil

APP_NAME_LABEL = "app.kubernetes.io/name"


class OpenShiftUtil(OpenShiftBaseManager):
    """Operations tests perform on the deployed application.

    Example:
        ```python
        def test_survives_scale_down(openshift_util):
            openshift_util.scale(0)
            openshift_util.scale(2)
        ```
    """

    _entity_name = "openshift_util"

    def __init__(
        self,
        client: OpenShiftClient,
        await_util: AwaitUtil,
        metadata: AppMetadata,
    ) -> None:
        super().__init__(client)
        self._await = await_util
        self._metadata = metadata

    @property
    def app_selector(self) -> str:
        """Label selector matching the pods of the application under test."""
        return f"{APP_NAME_LABEL}={self._metadata.app_name}"

    def list_pods(self, label_selector: str | None = None) -> list[PodSummary]:
        """Pods of the application, or of an explicit selector."""
        return self._client.list_pods(label_selector or self.app_selector)

    def scale(
        self,
        replicas: int,
        *,
        name: str | None = None,
        kind: str = "Deployment",
    ) -> None:
        """Scale a workload and wait until the requested replicas are ready.

        Args:
            replicas: Desired replica count.
            name: Workload name (defaults to the application name).
            kind: ``Deployment`` or ``DeploymentConfig``.
        """
        target = name or self._metadata.app_name
        body = {"spec": {"replicas": replicas}}
        self._log.info("scaling", name=target, kind=kind, replicas=replicas)
        try:
            if kind == "DeploymentConfig":
                self._client.custom_objects.patch_namespaced_custom_object_scale(
                    APPS_GROUP,
                    APPS_VERSION,
                    self.namespace,
                    DEPLOYMENT_CONFIG_PLURAL,
                    target,
                    body,
                )
            else:
                self._client.apps_v1.patch_namespaced_deployment_scale(
                    name=target, namespace=self.namespace, body=body
                )
        except Exception as e:
            self._handle_api_error(e, kind, target)

        if replicas == 0:
            self._await.await_until(
                f"{target} scaled to zero",
                lambda: not self._client.list_pods(self.app_selector),
            )
        else:
            self._await.await_pods_ready(self.app_selector, expected=replicas)

    def delete_pods(self, label_selector: str | None = None) -> None:
        """Delete the selected pods and wait until replacements are ready."""
        selector = label_selector or self.app_selector
        pods = self._client.list_pods(selector)
        for pod in pods:
            self._log.info("deleting_pod", pod=pod.name)
            try:
                self._client.core_v1.delete_namespaced_pod(name=pod.name, namespace=self.namespace)
            except Exception as e:
                self._handle_api_error(e, "Pod", pod.name)
        old_names = {pod.name for pod in pods}
        self._await.await_until(
            f"replacement pods {selector}",
            lambda: self._replaced(selector, old_names, len(pods)),
        )

    def _replaced(self, selector: str, old_names: set[str], count: int) -> bool:
        current = [p for p in self._client.list_pods(selector) if p.name not in old_names]
        return len(current) >= count and all(p.ready for p in current)

    def get_route_host(self, name: str | None = None) -> str | None:
        """Host assigned to a route (defaults to the application's route)."""
        return self._client.get_route(name or self._metadata.app_name).host
