"""Per test class state of a lifecycle run."""

from __future__ import annotations

import enum
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING

from openshift_testkit.core.metadata import AppMetadata
from openshift_testkit.integrations.openshift.client import OpenShiftClient
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError
from openshift_testkit.services.openshift.await_util import AwaitUtil
from openshift_testkit.services.openshift.openshift_util import OpenShiftUtil
from openshift_testkit.services.openshift.route_resolver import RouteResolver

if TYPE_CHECKING:
    from openshift_testkit.core.config import TestkitConfig
    from openshift_testkit.integrations.openshift.knative import KnativeClient
    from openshift_testkit.lifecycle.unit import TestUnitConfig
    from openshift_testkit.services.openshift.deployment_manager import DeployedResourceSet
    from openshift_testkit.services.openshift.namespace_manager import EphemeralNamespace
    from openshift_testkit.services.openshift.route_resolver import HttpClientConfig

ClientFactory = Callable[["TestkitConfig", "str | None"], OpenShiftClient]


class LifecycleState(enum.Enum):
    NOT_STARTED = "not_started"
    SETTING_UP = "setting_up"
    READY = "ready"
    RUNNING = "running"
    TEARING_DOWN = "tearing_down"
    DONE = "done"


class RunContext:
    """State of one test class run.

    Collaborators are built on first use and cached, so every consumer of a
    run shares the same client, metadata and helpers. The client targets the
    ephemeral namespace when one was created before first use.
    """

    def __init__(
        self,
        unit: TestUnitConfig,
        config: TestkitConfig,
        *,
        client_factory: ClientFactory = OpenShiftClient,
        client: OpenShiftClient | None = None,
        metadata: AppMetadata | None = None,
        await_util: AwaitUtil | None = None,
        openshift_util: OpenShiftUtil | None = None,
        routes: RouteResolver | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.unit = unit
        self.config = config
        self.namespace: EphemeralNamespace | None = None
        self.failed = False
        self.state = LifecycleState.NOT_STARTED
        self.http_config: HttpClientConfig | None = None
        self.deployed_additional: list[DeployedResourceSet] = []

        self._client_factory = client_factory
        self._client = client
        self._knative_client: KnativeClient | None = None
        self._metadata = metadata
        self._await_util = await_util
        self._openshift_util = openshift_util
        self._routes = routes

    @property
    def namespace_name(self) -> str | None:
        """Ephemeral namespace if any, else the configured one."""
        return self.namespace.name if self.namespace else self.config.namespace

    @property
    def client(self) -> OpenShiftClient:
        if self._client is None:
            self._client = self._client_factory(self.config, self.namespace_name)
        return self._client

    @property
    def knative_client(self) -> KnativeClient:
        if self._knative_client is None:
            self._knative_client = self.client.adapt_knative()
        return self._knative_client

    @property
    def metadata(self) -> AppMetadata:
        if self._metadata is None:
            custom = self.unit.custom_metadata
            if custom is None:
                custom = AppMetadata.load(self.config.metadata_path)
            self._metadata = custom
        return self._metadata

    @property
    def await_util(self) -> AwaitUtil:
        if self._await_util is None:
            self._await_util = AwaitUtil(self.client, self.metadata, self.config)
        return self._await_util

    @property
    def openshift_util(self) -> OpenShiftUtil:
        if self._openshift_util is None:
            self._openshift_util = OpenShiftUtil(self.client, self.await_util, self.metadata)
        return self._openshift_util

    @property
    def routes(self) -> RouteResolver:
        if self._routes is None:
            self._routes = RouteResolver(self.client, self.metadata)
        return self._routes

    def require_http_config(self) -> HttpClientConfig:
        """HTTP client settings resolved during setup.

        Raises:
            ConfigurationError: If setup has not resolved them.
        """
        if self.http_config is None:
            raise ConfigurationError(
                f"HTTP client configuration of {self.unit.display_name} "
                "is not available before setup"
            )
        return self.http_config

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
