"""Base manager for OpenShift service managers.

Provides shared infrastructure for the managers driving a test run:
client access and structured logging with entity binding.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import structlog

if TYPE_CHECKING:
    from openshift_testkit.integrations.openshift.client import OpenShiftClient

logger = structlog.get_logger()


class OpenShiftBaseManager:
    """Base class for OpenShift service managers.

    Subclasses set ``_entity_name`` for structured log context.

    Example:
        >>> class DeploymentManager(OpenShiftBaseManager):
        ...     _entity_name = "deployment"
    """

    _entity_name: str = ""

    def __init__(self, client: OpenShiftClient) -> None:
        """Initialize the manager.

        Args:
            client: OpenShift API client instance.
        """
        self._client = client
        self._log = logger.bind(entity=self._entity_name)

    @property
    def namespace(self) -> str:
        return self._client.namespace

    def _handle_api_error(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> NoReturn:
        """Translate an API exception and re-raise.

        Raises:
            OpenShiftError: Always raises an appropriate subclass.
        """
        raise self._client.translate_api_exception(
            e,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=self._client.namespace,
        ) from e
