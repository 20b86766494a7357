"""OpenShift API client wrapper.

Wraps the official kubernetes Python client with kubeconfig context
selection, a fixed working namespace, lazy API group initialization, access
to the OpenShift-specific resources (routes, image streams, deployment
configs) and consistent error translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from openshift_testkit.integrations.openshift.exceptions import (
    OpenShiftAuthError,
    OpenShiftConflictError,
    OpenShiftConnectionError,
    OpenShiftError,
    OpenShiftNotFoundError,
    OpenShiftValidationError,
)
from openshift_testkit.integrations.openshift.models import (
    ImageStreamSummary,
    PodSummary,
    RouteSummary,
)

if TYPE_CHECKING:
    from kubernetes.client import AppsV1Api, CoreV1Api, CustomObjectsApi

    from openshift_testkit.core.config import TestkitConfig
    from openshift_testkit.integrations.openshift.knative import KnativeClient

logger = structlog.get_logger()

# OpenShift API group coordinates
ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"
ROUTE_PLURAL = "routes"
IMAGE_GROUP = "image.openshift.io"
IMAGE_VERSION = "v1"
IMAGE_STREAM_PLURAL = "imagestreams"
APPS_GROUP = "apps.openshift.io"
APPS_VERSION = "v1"
DEPLOYMENT_CONFIG_PLURAL = "deploymentconfigs"

DEFAULT_NAMESPACE = "default"


class OpenShiftClient:
    """OpenShift API client bound to a single namespace.

    Wraps the official kubernetes Python client with:
    - kubeconfig context selection, falling back to in-cluster config
    - Lazy API group initialization
    - Typed accessors for routes, image streams and pods
    - Consistent error translation to custom exceptions
    - Context manager support

    Example:
        ```python
        config = TestkitConfig.from_env()
        with OpenShiftClient(config, namespace="ts-abcdefghij") as oc:
            route = oc.get_route("my-app")
            print(route.base_address)
        ```
    """

    def __init__(self, config: TestkitConfig, namespace: str | None = None) -> None:
        """Initialize the client.

        Args:
            config: Test suite configuration (kubeconfig, context, namespace).
            namespace: Namespace to operate in. Overrides ``config.namespace``
                and the namespace of the kubeconfig context.
        """
        self._config = config
        self._retries = config.api_retry_attempts
        self._current_context: str | None = None
        self._context_namespace: str | None = None

        self._core_v1: CoreV1Api | None = None
        self._apps_v1: AppsV1Api | None = None
        self._custom_objects: CustomObjectsApi | None = None

        self._load_config()
        self._namespace = (
            namespace or config.namespace or self._context_namespace or DEFAULT_NAMESPACE
        )

        logger.info(
            "OpenShift client initialized",
            context=self._current_context,
            namespace=self._namespace,
        )

    def _load_config(self) -> None:
        """Load cluster configuration from kubeconfig or in-cluster."""
        from kubernetes import config
        from kubernetes.config import ConfigException

        try:
            config.load_kube_config(
                config_file=self._config.kubeconfig,
                context=self._config.kube_context,
            )
            self._current_context = self._config.kube_context
            self._context_namespace = self._read_context_namespace()
            logger.debug(
                "loaded_kubeconfig",
                context=self._config.kube_context,
                kubeconfig=self._config.kubeconfig,
            )
        except ConfigException:
            try:
                config.load_incluster_config()
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException as e:
                raise OpenShiftConnectionError(
                    message="Cannot load cluster configuration. "
                    "Ensure kubeconfig exists or running inside a cluster.",
                    original_error=e,
                ) from e

        self._invalidate_api_cache()

    def _read_context_namespace(self) -> str | None:
        """Namespace of the selected kubeconfig context, if it declares one."""
        from kubernetes import config

        try:
            contexts, active = config.list_kube_config_contexts(
                config_file=self._config.kubeconfig,
            )
        except Exception:
            return None

        selected = active
        if self._config.kube_context:
            selected = next(
                (c for c in contexts if c.get("name") == self._config.kube_context),
                active,
            )
        if not selected:
            return None
        if self._current_context is None:
            self._current_context = selected.get("name")
        namespace: str | None = selected.get("context", {}).get("namespace")
        return namespace

    def _invalidate_api_cache(self) -> None:
        """Clear cached API group instances."""
        self._core_v1 = None
        self._apps_v1 = None
        self._custom_objects = None

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (pods, services, namespaces, events, etc.)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api()
        return self._core_v1

    @property
    def apps_v1(self) -> AppsV1Api:
        """Get AppsV1Api instance (deployments, statefulsets)."""
        if self._apps_v1 is None:
            from kubernetes.client import AppsV1Api

            self._apps_v1 = AppsV1Api()
        return self._apps_v1

    @property
    def custom_objects(self) -> CustomObjectsApi:
        """Get CustomObjectsApi instance (routes, image streams, Knative resources)."""
        if self._custom_objects is None:
            from kubernetes.client import CustomObjectsApi

            self._custom_objects = CustomObjectsApi()
        return self._custom_objects

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> OpenShiftError:
        """Translate a kubernetes ApiException to a custom exception.

        Args:
            e: The original ApiException.
            resource_type: Type of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate OpenShiftError subclass.
        """
        from kubernetes.client import ApiException

        if isinstance(e, OpenShiftError):
            return e

        if not isinstance(e, ApiException):
            return OpenShiftError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return OpenShiftAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return OpenShiftNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return OpenShiftConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status in (400, 422):
            return OpenShiftValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        if not status:
            return OpenShiftConnectionError(
                message=e.reason or "Cluster API unreachable",
                original_error=e,
            )

        return OpenShiftError(
            message=e.reason or f"OpenShift API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry Decorator
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(OpenShiftConnectionError),
            stop=stop_after_attempt(max(self._retries, 1)),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def _get_custom_object(self, group: str, version: str, plural: str, name: str) -> Any:
        @self.make_retry_decorator()
        def _read() -> Any:
            try:
                return self.custom_objects.get_namespaced_custom_object(
                    group, version, self._namespace, plural, name
                )
            except Exception as e:
                raise self.translate_api_exception(
                    e, resource_type=plural, resource_name=name, namespace=self._namespace
                ) from e

        return _read()

    # =========================================================================
    # OpenShift Resources
    # =========================================================================

    def get_route(self, name: str) -> RouteSummary:
        """Get a Route by name.

        Raises:
            OpenShiftNotFoundError: If the route does not exist.
        """
        obj = self._get_custom_object(ROUTE_GROUP, ROUTE_VERSION, ROUTE_PLURAL, name)
        return RouteSummary.from_k8s_object(obj)

    def get_image_stream(self, name: str) -> ImageStreamSummary:
        """Get an ImageStream by name.

        Raises:
            OpenShiftNotFoundError: If the image stream does not exist.
        """
        obj = self._get_custom_object(IMAGE_GROUP, IMAGE_VERSION, IMAGE_STREAM_PLURAL, name)
        return ImageStreamSummary.from_k8s_object(obj)

    def get_deployment_config(self, name: str) -> dict[str, Any]:
        """Get a raw DeploymentConfig by name."""
        result: dict[str, Any] = self._get_custom_object(
            APPS_GROUP, APPS_VERSION, DEPLOYMENT_CONFIG_PLURAL, name
        )
        return result

    def list_pods(self, label_selector: str | None = None) -> list[PodSummary]:
        """List pods in the working namespace."""
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            result = self.core_v1.list_namespaced_pod(namespace=self._namespace, **kwargs)
        except Exception as e:
            raise self.translate_api_exception(e, "Pod", None, self._namespace) from e
        return [PodSummary.from_k8s_object(pod) for pod in result.items or []]

    def adapt_knative(self) -> KnativeClient:
        """Return a Knative Serving client sharing this client's configuration."""
        from openshift_testkit.integrations.openshift.knative import KnativeClient

        return KnativeClient(self)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def namespace(self) -> str:
        """Namespace every namespaced call targets."""
        return self._namespace

    def get_current_context(self) -> str:
        return self._current_context or "unknown"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        self._invalidate_api_cache()
        logger.debug("OpenShift client closed")

    def __enter__(self) -> OpenShiftClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
