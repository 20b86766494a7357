"""Dependency injection of cluster values into tests, hooks and failure actions.

The set of injectable values is closed: every request is first turned into an
:class:`InjectionRequest` naming one :class:`ResourceKind`, and the resolver
handles each kind explicitly. A type outside that set is rejected with a
:class:`ConfigurationError` naming where it was requested.

Example:
    ```python
    @pytest.mark.openshift_test
    class TestGreeting:
        oc: Annotated[OpenShiftClient, TestResource()]
        url: Annotated[httpx.URL, TestResource()]
        admin: Annotated[httpx.URL, TestResource(), WithName("admin")]
    ```
"""

from __future__ import annotations

import enum
import inspect
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, assert_never, get_args, get_origin

import httpx
import structlog

from openshift_testkit.core.config import TestkitConfig
from openshift_testkit.core.metadata import AppMetadata
from openshift_testkit.integrations.openshift.client import OpenShiftClient
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError
from openshift_testkit.integrations.openshift.knative import KnativeClient
from openshift_testkit.lifecycle.markers import TestResource, WithName
from openshift_testkit.services.openshift.await_util import AwaitUtil
from openshift_testkit.services.openshift.openshift_util import OpenShiftUtil
from openshift_testkit.services.openshift.route_resolver import HttpClientConfig

if TYPE_CHECKING:
    from openshift_testkit.lifecycle.context import RunContext

logger = structlog.get_logger()

__all__ = [
    "DependencyInjector",
    "InjectionRequest",
    "ResourceKind",
    "TestResource",
    "WithName",
    "injection_sites",
]


class ResourceKind(enum.Enum):
    """Values that can be injected."""

    OPENSHIFT_CLIENT = "openshift_client"
    KNATIVE_CLIENT = "knative_client"
    APP_METADATA = "app_metadata"
    AWAIT_UTIL = "await_util"
    OPENSHIFT_UTIL = "openshift_util"
    CONFIG = "config"
    URL = "url"
    HTTP_CONFIG = "http_config"


TYPE_KINDS: dict[type, ResourceKind] = {
    OpenShiftClient: ResourceKind.OPENSHIFT_CLIENT,
    KnativeClient: ResourceKind.KNATIVE_CLIENT,
    AppMetadata: ResourceKind.APP_METADATA,
    AwaitUtil: ResourceKind.AWAIT_UTIL,
    OpenShiftUtil: ResourceKind.OPENSHIFT_UTIL,
    TestkitConfig: ResourceKind.CONFIG,
    httpx.URL: ResourceKind.URL,
    HttpClientConfig: ResourceKind.HTTP_CONFIG,
}


def _type_name(annotation: Any) -> str:
    if annotation is inspect.Parameter.empty:
        return "<missing annotation>"
    return getattr(annotation, "__qualname__", None) or repr(annotation)


def _is_test_resource(annotation: Any) -> bool:
    if get_origin(annotation) is not Annotated:
        return False
    return any(isinstance(extra, TestResource) for extra in annotation.__metadata__)


@dataclass(frozen=True)
class InjectionRequest:
    """A single value to inject.

    Attributes:
        kind: What to inject.
        route_name: Route to resolve, only for :attr:`ResourceKind.URL`;
            None means the application's own route.
        site: Where the value was requested, used in error messages.
    """

    kind: ResourceKind
    route_name: str | None = None
    site: str = ""

    @classmethod
    def for_annotation(cls, annotation: Any, site: str) -> InjectionRequest:
        """Build a request from a type annotation.

        Accepts a supported type, optionally wrapped in ``Annotated`` with
        :class:`TestResource` and :class:`WithName` markers.

        Raises:
            ConfigurationError: If the type cannot be injected.
        """
        route_name = None
        base = annotation
        if get_origin(annotation) is Annotated:
            base, *extras = get_args(annotation)
            for extra in extras:
                if isinstance(extra, WithName):
                    route_name = extra.value

        kind = TYPE_KINDS.get(base) if isinstance(base, type) else None
        if kind is None:
            raise ConfigurationError(
                f"Unsupported type {_type_name(base)} for test resource {site}"
            )
        if route_name is not None and kind is not ResourceKind.URL:
            raise ConfigurationError(
                f"Route name qualifier on {_type_name(base)} for test resource {site}, "
                "only URLs can be qualified"
            )
        return cls(kind=kind, route_name=route_name, site=site)


def injection_sites(cls: type) -> dict[str, InjectionRequest]:
    """Requests for every attribute of ``cls`` annotated with :class:`TestResource`.

    Private attributes are included; name mangling is not applied.

    Raises:
        ConfigurationError: If an annotation cannot be evaluated or its type
            cannot be injected.
    """
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except NameError as e:
        raise ConfigurationError(f"Cannot evaluate annotations of {cls.__qualname__}: {e}") from e

    return {
        name: InjectionRequest.for_annotation(hint, f"{cls.__qualname__}.{name}")
        for name, hint in hints.items()
        if _is_test_resource(hint)
    }


class DependencyInjector:
    """Resolves injection requests against one run context.

    Collaborators are cached by the context, so resolving the same request
    twice yields the same object.
    """

    def __init__(self, context: RunContext) -> None:
        self._context = context
        self._log = logger.bind(entity="injector", run=context.id)

    def resolve(self, request: InjectionRequest) -> object:
        """Resolve a request to its value."""
        context = self._context
        kind = request.kind
        if kind is ResourceKind.OPENSHIFT_CLIENT:
            return context.client
        elif kind is ResourceKind.KNATIVE_CLIENT:
            return context.knative_client
        elif kind is ResourceKind.APP_METADATA:
            return context.metadata
        elif kind is ResourceKind.AWAIT_UTIL:
            return context.await_util
        elif kind is ResourceKind.OPENSHIFT_UTIL:
            return context.openshift_util
        elif kind is ResourceKind.CONFIG:
            return context.config
        elif kind is ResourceKind.URL:
            return context.routes.url_for(request.route_name)
        elif kind is ResourceKind.HTTP_CONFIG:
            return context.require_http_config()
        else:
            assert_never(kind)

    def resolve_annotation(self, annotation: Any, site: str) -> object:
        return self.resolve(InjectionRequest.for_annotation(annotation, site))

    def inject_fields(self, instance: object) -> None:
        """Set every :class:`TestResource` attribute of ``instance``."""
        for name, request in injection_sites(type(instance)).items():
            self._log.debug("injecting_field", site=request.site, kind=request.kind.value)
            setattr(instance, name, self.resolve(request))

    def call(self, function: Callable[..., object], site: str) -> object:
        """Call ``function`` with every parameter injected by its type.

        Raises:
            ConfigurationError: If a parameter's type cannot be injected.
        """
        try:
            signature = inspect.signature(function, eval_str=True)
        except NameError as e:
            raise ConfigurationError(f"Cannot evaluate annotations of {site}: {e}") from e
        kwargs = {
            name: self.resolve_annotation(param.annotation, f"{site}({name})")
            for name, param in signature.parameters.items()
        }
        return function(**kwargs)
