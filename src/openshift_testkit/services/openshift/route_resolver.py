"""Resolution of externally reachable application URLs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from openshift_testkit.integrations.openshift.exceptions import (
    ConfigurationError,
    OpenShiftNotFoundError,
)
from openshift_testkit.services.openshift.base import OpenShiftBaseManager

if TYPE_CHECKING:
    from openshift_testkit.core.metadata import AppMetadata
    from openshift_testkit.integrations.openshift.client import OpenShiftClient


def join_url_path(root: str, path: str) -> str:
    """Join an HTTP root and a path without doubling or losing slashes.

    >>> join_url_path("/", "/hello")
    '/hello'
    >>> join_url_path("/api", "hello")
    '/api/hello'
    """
    root = root.rstrip("/")
    if not path:
        return root or "/"
    return f"{root}/{path.lstrip('/')}"


def with_http_root(address: str, http_root: str | None) -> str:
    """Append an HTTP root to a base address, skipping the trivial root ``/``."""
    if http_root and len(http_root) > 1:
        return address.rstrip("/") + "/" + http_root.strip("/")
    return address


@dataclass(frozen=True)
class HttpClientConfig:
    """HTTP client settings for talking to the application under test.

    Produced once during setup and handed to tests, instead of mutating a
    process-wide HTTP client.
    """

    base_url: str
    base_path: str = "/"
    verify_tls: bool = True

    @property
    def url(self) -> str:
        """Base URL including the base path."""
        return with_http_root(self.base_url, self.base_path)

    def create_client(self, **kwargs: Any) -> httpx.Client:
        """Build an ``httpx.Client`` rooted at :attr:`url`."""
        kwargs.setdefault("verify", self.verify_tls)
        kwargs.setdefault("follow_redirects", True)
        return httpx.Client(base_url=self.url, **kwargs)


class RouteResolver(OpenShiftBaseManager):
    """Turns route names into base URLs.

    Standard applications are reached through their OpenShift route;
    applications whose deployment target is Knative through the Knative
    route of the same name.
    """

    _entity_name = "route"

    def __init__(self, client: OpenShiftClient, metadata: AppMetadata) -> None:
        super().__init__(client)
        self._metadata = metadata

    def base_address(self, route_name: str) -> str:
        """Scheme and host of an OpenShift route.

        Raises:
            ConfigurationError: If the route does not exist.
        """
        try:
            route = self._client.get_route(route_name)
        except OpenShiftNotFoundError as e:
            raise ConfigurationError(
                f"Missing route {route_name}, is the application exposed?"
            ) from e
        if not route.host:
            raise ConfigurationError(f"Route {route_name} has no host assigned")
        return route.base_address

    def knative_address(self, route_name: str) -> str:
        """URL of a Knative route.

        Raises:
            ConfigurationError: If the route does not exist or has no URL yet.
        """
        try:
            route = self._client.adapt_knative().get_route(route_name)
        except OpenShiftNotFoundError as e:
            raise ConfigurationError(f"Missing knative route {route_name}") from e
        if not route.url:
            raise ConfigurationError(f"Knative route {route_name} has no URL assigned")
        return route.url

    def app_address(self) -> str:
        """Base address of the application under test, including its HTTP root."""
        name = self._metadata.app_name
        if self._metadata.is_knative:
            address = self.knative_address(name)
        else:
            address = self.base_address(name)
        return with_http_root(address, self._metadata.http_root)

    def url_for(self, route_name: str | None = None) -> httpx.URL:
        """URL of a named route, or of the application when no name is given.

        The application's HTTP root is only appended for the application's
        own route.
        """
        if route_name is None:
            return httpx.URL(self.app_address())
        return httpx.URL(self.base_address(route_name))

    def http_config(self) -> HttpClientConfig:
        """HTTP client settings pointing at the application under test."""
        name = self._metadata.app_name
        if self._metadata.is_knative:
            self._log.info("resolving_route", client="knative", route=name)
            base_url = self.knative_address(name)
            verify = True
        else:
            self._log.info("resolving_route", client="openshift", route=name)
            base_url = self.base_address(name)
            verify = not base_url.startswith("https://")
        config = HttpClientConfig(
            base_url=base_url,
            base_path=self._metadata.http_root,
            verify_tls=verify,
        )
        self._log.info(
            "configured_http_client", base_url=config.base_url, base_path=config.base_path
        )
        return config
