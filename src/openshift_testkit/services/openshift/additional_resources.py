"""Extra manifests a test class needs next to the application.

Typical examples are databases or message brokers the application talks to.
They are deployed before the application and awaited until ready.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from openshift_testkit.integrations.openshift.exceptions import ConfigurationError, OpenShiftError
from openshift_testkit.services.openshift.deployment_manager import (
    IMAGE_STREAM_KIND,
    DeployedResourceSet,
    load_manifest,
)

if TYPE_CHECKING:
    from openshift_testkit.integrations.openshift.oc_client import OcClient
    from openshift_testkit.services.openshift.await_util import AwaitUtil

logger = structlog.get_logger()

# Workload kinds whose readiness is awaited after deployment
AWAITED_KINDS = ("Deployment", "DeploymentConfig")


@dataclass(frozen=True)
class AdditionalResources:
    """Declaration of an extra manifest file to deploy for a test class."""

    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))


class AdditionalResourceManager:
    """Deploys and undeploys additional resource manifests."""

    def __init__(self, oc: OcClient, await_util: AwaitUtil) -> None:
        self._oc = oc
        self._await = await_util
        self._log = logger.bind(entity="additional_resources", namespace=oc.namespace)

    def apply(self, declaration: AdditionalResources) -> DeployedResourceSet:
        """Apply a manifest without waiting for its resources.

        The returned set can be undeployed even when a later wait fails.

        Raises:
            ConfigurationError: If the manifest does not exist.
            ExternalProcessError: If ``oc apply`` fails.
        """
        path = declaration.path
        if not path.is_file():
            raise ConfigurationError(f"Missing additional resources {path}")

        self._log.info("deploying_additional_resources", manifest=str(path))
        self._oc.apply(path)
        return DeployedResourceSet(manifest=path, namespace=self._oc.namespace)

    def await_ready(self, deployed: DeployedResourceSet) -> None:
        """Wait for the image streams and workloads of an applied manifest.

        Raises:
            AwaitTimeoutError: If a resource does not become ready.
        """
        for resource in load_manifest(deployed.manifest):
            kind = resource.get("kind")
            name = (resource.get("metadata") or {}).get("name")
            if not name:
                continue
            if kind == IMAGE_STREAM_KIND:
                self._await.await_image_stream(name)
            elif kind in AWAITED_KINDS:
                self._await.await_deployment_ready(name, kind=kind)

    def undeploy(self, deployed: DeployedResourceSet) -> bool:
        """Delete deployed additional resources; absent ones are fine.

        Returns:
            True when deletion succeeded. Failures are logged, not raised.
        """
        self._log.info("undeploying_additional_resources", manifest=str(deployed.manifest))
        try:
            self._oc.delete(deployed.manifest)
        except OpenShiftError as e:
            self._log.error(
                "undeploy_additional_resources_failed",
                manifest=str(deployed.manifest),
                error=str(e),
            )
            return False
        return True
