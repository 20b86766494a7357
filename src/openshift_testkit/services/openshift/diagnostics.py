"""Diagnostics collected when a test class fails.

Failure actions are looked up in an explicit registry: a mapping from an
action name to a :class:`FailureAction` subclass. The registry holds the
built-in actions plus whatever other distributions declare under the
``openshift_testkit.failure_actions`` entry point group.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import Callable, Iterator
from typing import Annotated

import structlog
from kubernetes.client import ApiException

from openshift_testkit.core.config import TestkitConfig
from openshift_testkit.integrations.openshift.client import OpenShiftClient
from openshift_testkit.integrations.openshift.exceptions import DiagnosticActionError
from openshift_testkit.integrations.openshift.oc_client import OcClient
from openshift_testkit.lifecycle.markers import TestResource

logger = structlog.get_logger()

ENTRY_POINT_GROUP = "openshift_testkit.failure_actions"

# Lines of pod log shown per pod
POD_LOG_TAIL_LINES = 100


class FailureAction:
    """Base class for actions run after a test class failed.

    Subclasses declare their dependencies as annotated attributes, which are
    injected before :meth:`execute` runs:

    Example:
        ```python
        class DumpRoutes(FailureAction):
            name = "dump-routes"

            oc: Annotated[OpenShiftClient, TestResource()]

            def execute(self) -> None:
                ...
        ```
    """

    name: str = ""

    def execute(self) -> None:
        raise NotImplementedError


class NamespaceStatusAction(FailureAction):
    """Shows project status, events and recent logs of every pod."""

    name = "namespace-status"

    oc: Annotated[OpenShiftClient, TestResource()]
    config: Annotated[TestkitConfig, TestResource()]

    def execute(self) -> None:
        log = logger.bind(entity="diagnostics", namespace=self.oc.namespace)
        cli = OcClient.from_config(self.config, namespace=self.oc.namespace)
        cli.status()
        cli.get("all")
        cli.get("events")

        for pod in self.oc.list_pods():
            try:
                log_text = self.oc.core_v1.read_namespaced_pod_log(
                    name=pod.name,
                    namespace=self.oc.namespace,
                    tail_lines=POD_LOG_TAIL_LINES,
                )
            except ApiException as e:
                log.warning("pod_log_unavailable", pod=pod.name, phase=pod.phase, error=e.reason)
                continue
            log.info("pod_log", pod=pod.name, phase=pod.phase, ready=pod.ready, log=log_text)


BUILTIN_ACTIONS: dict[str, type[FailureAction]] = {
    NamespaceStatusAction.name: NamespaceStatusAction,
}


class FailureActionRegistry:
    """Named failure actions, in registration order."""

    def __init__(self) -> None:
        self._actions: dict[str, type[FailureAction]] = {}

    @classmethod
    def default(cls) -> FailureActionRegistry:
        """Registry with the built-in actions and all discovered ones."""
        registry = cls()
        for name, action in BUILTIN_ACTIONS.items():
            registry.register(name, action)
        registry.discover()
        return registry

    def register(self, name: str, action: type[FailureAction]) -> None:
        """Register an action class under a name, replacing any previous one."""
        self._actions[name] = action
        logger.debug("registered_failure_action", name=name, action=action.__qualname__)

    def discover(self) -> list[str]:
        """Register actions declared as entry points.

        Entry points that fail to load are logged and skipped.

        Returns:
            Names of the registered actions.
        """
        discovered = []
        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            try:
                action = ep.load()
            except Exception as e:
                logger.warning("failure_action_load_failed", name=ep.name, error=str(e))
                continue
            self.register(ep.name, action)
            discovered.append(ep.name)
        return discovered

    def get(self, name: str) -> type[FailureAction] | None:
        return self._actions.get(name)

    def names(self) -> list[str]:
        return list(self._actions)

    def __iter__(self) -> Iterator[tuple[str, type[FailureAction]]]:
        return iter(list(self._actions.items()))

    def __len__(self) -> int:
        return len(self._actions)


class FailureDiagnosticsRunner:
    """Runs every registered failure action, isolating their failures."""

    def __init__(
        self,
        registry: FailureActionRegistry,
        inject: Callable[[object], None],
        *,
        disabled: frozenset[str] = frozenset(),
    ) -> None:
        """Initialize the runner.

        Args:
            registry: Actions to run.
            inject: Injects dependencies into an action instance.
            disabled: Names of actions to skip.
        """
        self._registry = registry
        self._inject = inject
        self._disabled = disabled
        self._log = logger.bind(entity="diagnostics")

    def run(self, display_name: str) -> list[DiagnosticActionError]:
        """Run all enabled actions for a failed test class.

        Returns:
            Errors of the actions that failed; never raised.
        """
        self._log.warning("test_failed_collecting_diagnostics", test=display_name)
        errors: list[DiagnosticActionError] = []
        for name, action_cls in self._registry:
            if name in self._disabled:
                self._log.debug("failure_action_disabled", action=name)
                continue
            try:
                action = action_cls()
                self._inject(action)
                action.execute()
            except Exception as e:
                error = DiagnosticActionError(name, e)
                self._log.error("failure_action_failed", action=name, error=str(e))
                errors.append(error)
        return errors
