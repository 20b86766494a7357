"""Polling waits for asynchronous cluster state.

Cluster operations complete asynchronously; :class:`AwaitUtil` turns them
into blocking calls by polling a predicate at a fixed interval until it holds
or a deadline passes.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    stop_all,
    wait_fixed,
)

from openshift_testkit.integrations.openshift.exceptions import (
    AwaitTimeoutError,
    OpenShiftNotFoundError,
    ResourceNeverReadyError,
)
from openshift_testkit.services.openshift.base import OpenShiftBaseManager
from openshift_testkit.services.openshift.route_resolver import join_url_path

if TYPE_CHECKING:
    from openshift_testkit.core.config import TestkitConfig
    from openshift_testkit.core.metadata import AppMetadata
    from openshift_testkit.integrations.openshift.client import OpenShiftClient

HTTP_OK = 200


@dataclass(frozen=True)
class AwaitSpec:
    """A named condition to poll for."""

    description: str
    predicate: Callable[[], bool]
    timeout: float
    interval: float

    @property
    def min_polls(self) -> int:
        """Polls performed before a timeout may be reported."""
        return max(1, math.ceil(self.timeout / self.interval))


class AwaitUtil(OpenShiftBaseManager):
    """Blocking waits on routes, image streams, pods and arbitrary predicates.

    A poll whose predicate raises is treated as "not ready yet", except for
    :class:`ResourceNeverReadyError` and for a resource that is still missing
    once the grace period has passed; both stop polling immediately.
    """

    _entity_name = "await"

    def __init__(
        self,
        client: OpenShiftClient,
        metadata: AppMetadata,
        config: TestkitConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the awaiter.

        Args:
            client: OpenShift API client.
            metadata: Metadata of the application under test.
            config: Supplies default timeout, interval, grace period and
                whether routes are probed over HTTP.
            sleep: Function used to wait between polls.
        """
        super().__init__(client)
        self._metadata = metadata
        self._timeout = config.await_timeout
        self._interval = config.await_interval
        self._missing_grace = config.missing_grace
        self._route_probe = config.route_probe
        self._probe_timeout = config.probe_timeout
        self._sleep = sleep

    # =========================================================================
    # Generic Polling
    # =========================================================================

    def await_until(
        self,
        description: str,
        predicate: Callable[[], bool],
        *,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> None:
        """Block until ``predicate`` returns true.

        Args:
            description: Names what is awaited; used in logs and errors.
            predicate: Condition over current cluster state.
            timeout: Deadline in seconds (defaults to configuration).
            interval: Pause between polls in seconds (defaults to configuration).

        Raises:
            AwaitTimeoutError: If the condition did not hold in time.
            ResourceNeverReadyError: If the condition can never hold.
        """
        spec = AwaitSpec(
            description=description,
            predicate=predicate,
            timeout=self._timeout if timeout is None else timeout,
            interval=self._interval if interval is None else interval,
        )
        self._poll(spec)

    def _poll(self, spec: AwaitSpec) -> None:
        started = time.monotonic()
        polls = 0

        def attempt() -> bool:
            nonlocal polls
            polls += 1
            try:
                return bool(spec.predicate())
            except ResourceNeverReadyError:
                raise
            except OpenShiftNotFoundError as e:
                if time.monotonic() - started >= self._missing_grace:
                    raise ResourceNeverReadyError(
                        f"{spec.description} can never become ready: {e.message}"
                    ) from e
                self._log.debug("await_resource_missing", description=spec.description)
                return False
            except Exception as e:
                self._log.debug("await_poll_failed", description=spec.description, error=str(e))
                return False

        retrying = Retrying(
            retry=retry_if_result(lambda ready: not ready),
            stop=stop_all(stop_after_attempt(spec.min_polls), stop_after_delay(spec.timeout)),
            wait=wait_fixed(spec.interval),
            sleep=self._sleep,
        )

        self._log.info("awaiting", description=spec.description, timeout=spec.timeout)
        try:
            retrying(attempt)
        except RetryError as e:
            elapsed = time.monotonic() - started
            self._log.error(
                "await_timed_out", description=spec.description, polls=polls, elapsed=elapsed
            )
            raise AwaitTimeoutError(spec.description, elapsed) from e

        self._log.info(
            "await_succeeded",
            description=spec.description,
            polls=polls,
            elapsed=round(time.monotonic() - started, 3),
        )

    # =========================================================================
    # Named Waits
    # =========================================================================

    def await_image_stream(self, name: str, *, timeout: float | None = None) -> None:
        """Wait until every tag of an image stream has an imported image."""
        self.await_until(
            f"image stream {name}",
            lambda: self._client.get_image_stream(name).ready,
            timeout=timeout,
        )

    def await_route(
        self,
        name: str,
        *,
        probe_path: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Wait until a route has a host assigned.

        Args:
            name: Route name.
            probe_path: When set (and probing is enabled), additionally wait
                until ``GET <route>/<probe_path>`` answers 200.
            timeout: Deadline in seconds.
        """

        def route_ready() -> bool:
            route = self._client.get_route(name)
            if not route.host:
                return False
            if probe_path is None or not self._route_probe:
                return True
            # certificates of TLS routes are not verified
            return self._probe(route.base_address + probe_path, verify=not route.tls)

        self.await_until(f"route {name}", route_ready, timeout=timeout)

    def await_knative_route(self, name: str, *, timeout: float | None = None) -> None:
        """Wait until a Knative route reports Ready and has a URL."""
        knative = self._client.adapt_knative()

        def route_ready() -> bool:
            route = knative.get_route(name)
            return route.ready and bool(route.url)

        self.await_until(f"knative route {name}", route_ready, timeout=timeout)

    def await_app_route(self, *, timeout: float | None = None) -> None:
        """Wait until the application under test is reachable."""
        if self._metadata.is_knative:
            self.await_knative_route(self._metadata.app_name, timeout=timeout)
            return
        self.await_route(
            self._metadata.app_name,
            probe_path=join_url_path(self._metadata.http_root, self._metadata.known_endpoint),
            timeout=timeout,
        )

    def await_pods_ready(
        self,
        label_selector: str,
        *,
        expected: int | None = None,
        timeout: float | None = None,
    ) -> None:
        """Wait until the selected pods are all ready.

        Args:
            label_selector: Pods to wait for.
            expected: Exact number of pods required, or None for "at least one".
            timeout: Deadline in seconds.
        """

        def pods_ready() -> bool:
            pods = self._client.list_pods(label_selector)
            if expected is not None and len(pods) != expected:
                return False
            return bool(pods) and all(pod.ready for pod in pods)

        self.await_until(f"pods {label_selector}", pods_ready, timeout=timeout)

    def await_deployment_ready(
        self,
        name: str,
        *,
        kind: str = "Deployment",
        timeout: float | None = None,
    ) -> None:
        """Wait until a Deployment or DeploymentConfig has all replicas ready."""

        def replicas_ready() -> bool:
            if kind == "DeploymentConfig":
                obj = self._client.get_deployment_config(name)
                wanted = obj.get("spec", {}).get("replicas", 1)
                ready = (obj.get("status", {}) or {}).get("readyReplicas") or 0
                return bool(ready >= wanted)
            try:
                deployment = self._client.apps_v1.read_namespaced_deployment(
                    name=name, namespace=self.namespace
                )
            except Exception as e:
                self._handle_api_error(e, kind, name)
            wanted = deployment.spec.replicas if deployment.spec.replicas is not None else 1
            return bool((deployment.status.ready_replicas or 0) >= wanted)

        self.await_until(f"{kind.lower()} {name}", replicas_ready, timeout=timeout)

    def _probe(self, url: str, *, verify: bool) -> bool:
        response = httpx.get(
            url, verify=verify, timeout=self._probe_timeout, follow_redirects=True
        )
        return response.status_code == HTTP_OK
