"""Declarations a test class makes about its own lifecycle."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from openshift_testkit.core.metadata import AppMetadata
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError
from openshift_testkit.services.openshift.additional_resources import AdditionalResources

__all__ = [
    "AdditionalResources",
    "HookMethod",
    "HookPhase",
    "TestUnitConfig",
    "collect_hooks",
    "customize_application_deployment",
    "customize_application_undeployment",
]

F = TypeVar("F")

HOOK_ATTRIBUTE = "__openshift_testkit_hook__"


class HookPhase:
    PRE_DEPLOY = "pre_deploy"
    POST_UNDEPLOY = "post_undeploy"


def _mark(phase: str) -> Callable[[F], F]:
    def decorator(method: F) -> F:
        target = getattr(method, "__func__", method)
        setattr(target, HOOK_ATTRIBUTE, phase)
        return method

    return decorator


def customize_application_deployment(method: F) -> F:
    """Run a static or class method before the application is deployed.

    Parameters of the method are injected by type.

    Example:
        ```python
        @customize_application_deployment
        @staticmethod
        def create_config_map(oc: OpenShiftClient) -> None:
            ...
        ```
    """
    return _mark(HookPhase.PRE_DEPLOY)(method)


def customize_application_undeployment(method: F) -> F:
    """Run a static or class method after the application is undeployed."""
    return _mark(HookPhase.POST_UNDEPLOY)(method)


@dataclass(frozen=True)
class HookMethod:
    """A hook method declared on a test class."""

    owner: type
    name: str

    @property
    def site(self) -> str:
        return f"{self.owner.__qualname__}.{self.name}"

    def resolve(self) -> Callable[..., object]:
        """Look up the callable, checking it is a valid hook.

        Raises:
            ConfigurationError: If the method is not a static or class method
                or declares a return type other than None.
        """
        raw = inspect.getattr_static(self.owner, self.name)
        if not isinstance(raw, staticmethod | classmethod):
            raise ConfigurationError(
                f"Hook method {self.site} must be a staticmethod or classmethod"
            )

        function = getattr(self.owner, self.name)
        try:
            returns = inspect.signature(function, eval_str=True).return_annotation
        except NameError as e:
            raise ConfigurationError(f"Cannot evaluate annotations of {self.site}: {e}") from e
        if returns not in (None, type(None), inspect.Signature.empty):
            raise ConfigurationError(f"Hook method {self.site} must return None")
        return function


def collect_hooks(cls: type, phase: str) -> tuple[HookMethod, ...]:
    """Hook methods of one phase, base classes first, in definition order.

    A method overridden without the hook decorator is no longer a hook.
    """
    hooks: dict[str, HookMethod] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            function = getattr(value, "__func__", value)
            if getattr(function, HOOK_ATTRIBUTE, None) == phase:
                hooks[name] = HookMethod(owner=cls, name=name)
            else:
                hooks.pop(name, None)
    return tuple(hooks.values())


def _as_additional_resources(value: AdditionalResources | str | Path) -> AdditionalResources:
    if isinstance(value, AdditionalResources):
        return value
    return AdditionalResources(Path(value))


@dataclass(frozen=True)
class TestUnitConfig:
    """Resolved lifecycle configuration of one test class.

    Attributes:
        display_name: Name used in log messages.
        manual_deployment: The test class deploys and undeploys the
            application itself.
        custom_metadata: Replaces the metadata generated by the build.
        additional_resources: Manifests deployed before the application.
        pre_deploy_hooks: Methods run before the application is deployed.
        post_undeploy_hooks: Methods run after the application is undeployed.
    """

    __test__ = False

    display_name: str
    manual_deployment: bool = False
    custom_metadata: AppMetadata | None = None
    additional_resources: tuple[AdditionalResources, ...] = ()
    pre_deploy_hooks: tuple[HookMethod, ...] = ()
    post_undeploy_hooks: tuple[HookMethod, ...] = ()

    @classmethod
    def from_class(
        cls,
        test_class: type,
        *,
        manual_deployment: bool = False,
        app_metadata: AppMetadata | Mapping[str, Any] | None = None,
        additional_resources: Iterable[AdditionalResources | str | Path] = (),
    ) -> TestUnitConfig:
        """Build the configuration from a test class and its marker arguments."""
        if isinstance(additional_resources, AdditionalResources | str | Path):
            additional_resources = (additional_resources,)
        metadata = app_metadata
        if metadata is not None and not isinstance(metadata, AppMetadata):
            metadata = AppMetadata(**metadata)
        return cls(
            display_name=test_class.__qualname__,
            manual_deployment=manual_deployment,
            custom_metadata=metadata,
            additional_resources=tuple(_as_additional_resources(r) for r in additional_resources),
            pre_deploy_hooks=collect_hooks(test_class, HookPhase.PRE_DEPLOY),
            post_undeploy_hooks=collect_hooks(test_class, HookPhase.POST_UNDEPLOY),
        )
