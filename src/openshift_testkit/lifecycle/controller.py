"""Lifecycle controller of one OpenShift test class.

Setup runs once before the first test of a class: ephemeral namespace,
additional resources, pre-deploy hooks, application deployment and build,
then the waits until the application is reachable. Teardown runs once after
the last test: diagnostics of a failed run, application undeployment,
post-undeploy hooks, additional resource undeployment and the ephemeral
namespace drop, each subject to the retention decision.

Any exception seen by the controller marks the run failed and is re-raised
unchanged.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, NoReturn

import structlog

from openshift_testkit.integrations.openshift.client import OpenShiftClient
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError
from openshift_testkit.integrations.openshift.oc_client import OcClient
from openshift_testkit.lifecycle.context import ClientFactory, LifecycleState, RunContext
from openshift_testkit.lifecycle.injection import DependencyInjector, InjectionRequest
from openshift_testkit.lifecycle.retention import decide
from openshift_testkit.services.openshift.additional_resources import AdditionalResourceManager
from openshift_testkit.services.openshift.deployment_manager import DeploymentManager
from openshift_testkit.services.openshift.diagnostics import (
    FailureActionRegistry,
    FailureDiagnosticsRunner,
)
from openshift_testkit.services.openshift.namespace_manager import NamespaceManager

if TYPE_CHECKING:
    from openshift_testkit.core.config import TestkitConfig
    from openshift_testkit.lifecycle.unit import HookMethod, TestUnitConfig

logger = structlog.get_logger()


class LifecycleController:
    """Drives setup, test execution bookkeeping and teardown of one test class.

    Not reentrant: one controller serves exactly one test class run.

    Example:
        ```python
        controller = LifecycleController(unit, TestkitConfig.from_env())
        try:
            controller.before_all()
            for test in tests:
                controller.before_each(test.name)
                with controller.intercept():
                    test()
        finally:
            controller.after_all()
        ```
    """

    def __init__(
        self,
        unit: TestUnitConfig,
        config: TestkitConfig,
        *,
        context: RunContext | None = None,
        client_factory: ClientFactory = OpenShiftClient,
        oc: OcClient | None = None,
        namespaces: NamespaceManager | None = None,
        deployments: DeploymentManager | None = None,
        additional_resources: AdditionalResourceManager | None = None,
        failure_actions: FailureActionRegistry | None = None,
    ) -> None:
        """Initialize the controller.

        Collaborators left out are built from ``config`` when first needed;
        the ones bound to a namespace only after the namespace is known.

        Args:
            unit: Lifecycle declarations of the test class.
            config: Global configuration.
            context: Run state; a fresh one when omitted.
            client_factory: Builds the API client from config and namespace.
            oc: oc CLI client, not bound to any namespace.
            namespaces: Ephemeral namespace manager.
            deployments: Application deployment manager.
            additional_resources: Additional resource manager.
            failure_actions: Diagnostics run when the class failed.
        """
        self._unit = unit
        self._config = config
        self._context = context or RunContext(unit, config, client_factory=client_factory)
        self._injector = DependencyInjector(self._context)
        self._oc = oc
        self._namespaces = namespaces
        self._deployments = deployments
        self._additional = additional_resources
        self._failure_actions = failure_actions
        self._log = logger.bind(entity="lifecycle", test=unit.display_name, run=self._context.id)

    @property
    def context(self) -> RunContext:
        return self._context

    @property
    def state(self) -> LifecycleState:
        return self._context.state

    @property
    def failed(self) -> bool:
        return self._context.failed

    # =========================================================================
    # Collaborators
    # =========================================================================

    def _base_oc(self) -> OcClient:
        if self._oc is None:
            self._oc = OcClient.from_config(self._config)
        return self._oc

    def _namespaced_oc(self) -> OcClient:
        return self._base_oc().with_namespace(self._context.namespace_name)

    def _namespace_manager(self) -> NamespaceManager:
        if self._namespaces is None:
            self._namespaces = NamespaceManager(self._base_oc())
        return self._namespaces

    def _deployment_manager(self) -> DeploymentManager:
        if self._deployments is None:
            self._deployments = DeploymentManager(self._namespaced_oc())
        return self._deployments

    def _additional_manager(self) -> AdditionalResourceManager:
        if self._additional is None:
            self._additional = AdditionalResourceManager(
                self._namespaced_oc(), self._context.await_util
            )
        return self._additional

    # =========================================================================
    # Test Runner Integration Points
    # =========================================================================

    def before_all(self) -> None:
        """Set up the test class.

        Raises:
            RuntimeError: If setup was already started.
            Exception: Whatever a setup step raised, unchanged, after the run
                was marked failed.
        """
        if self._context.state is not LifecycleState.NOT_STARTED:
            raise RuntimeError(f"Setup of {self._unit.display_name} was already started")

        self._context.state = LifecycleState.SETTING_UP
        self._log.info("setting_up")
        with self.intercept():
            self._set_up()
        self._context.state = LifecycleState.READY
        self._log.info("set_up_complete")

    def _set_up(self) -> None:
        context = self._context
        config = self._config

        if config.ephemeral_namespaces:
            context.namespace = self._namespace_manager().create()

        for declaration in self._unit.additional_resources:
            additional = self._additional_manager()
            deployed = additional.apply(declaration)
            if not config.ephemeral_namespaces:
                context.deployed_additional.append(deployed)
            additional.await_ready(deployed)

        self._run_hooks(self._unit.pre_deploy_hooks)

        if not self._unit.manual_deployment:
            self._deploy_application()

        context.await_util.await_app_route()
        context.http_config = context.routes.http_config()

    def _deploy_application(self) -> None:
        config = self._config
        manifest = config.manifest_path
        if not manifest.is_file():
            raise ConfigurationError(
                f"Missing {manifest}, did you add the quarkus-openshift extension?"
            )

        deployments = self._deployment_manager()
        metadata = self._context.metadata
        if config.image_overrides:
            deployments.apply_image_overrides(manifest, config.image_overrides)
        deployments.apply(manifest)
        for name in deployments.image_streams_to_await(manifest, metadata.app_name):
            self._context.await_util.await_image_stream(name)
        deployments.build_and_run(metadata.app_name, config.build_dir)

    def before_each(self, test_name: str) -> None:
        """Record the start of a test."""
        self._context.state = LifecycleState.RUNNING
        self._log.info("running_test", test_case=test_name)

    @contextmanager
    def intercept(self) -> Iterator[None]:
        """Mark the run failed on any exception raised in the block."""
        try:
            yield
        except Exception as e:
            self.handle_exception(e)

    def handle_exception(self, exc: BaseException) -> NoReturn:
        """Mark the run failed and re-raise ``exc`` unchanged."""
        self.record_failure()
        raise exc

    def record_failure(self) -> None:
        """Mark the run failed."""
        if not self._context.failed:
            self._log.warning("run_marked_failed")
        self._context.failed = True

    def resolve(self, request: InjectionRequest) -> object:
        """Resolve a single injection request."""
        return self._injector.resolve(request)

    def inject_fields(self, instance: object) -> None:
        """Inject all ``TestResource`` attributes of ``instance``."""
        self._injector.inject_fields(instance)

    def after_all(self) -> None:
        """Tear down the test class; a second call does nothing.

        Raises:
            Exception: The first post-undeploy hook failure, or a namespace
                drop failure noting any hook failure, after every other
                step ran.
        """
        context = self._context
        if context.state in (LifecycleState.TEARING_DOWN, LifecycleState.DONE):
            return
        context.state = LifecycleState.TEARING_DOWN

        try:
            self._tear_down()
        finally:
            context.state = LifecycleState.DONE
            context.close()
            self._log.info("tear_down_complete", failed=context.failed)

    def _tear_down(self) -> None:
        context = self._context
        config = self._config
        display_name = self._unit.display_name

        if context.failed:
            self._log.warning("test_failed_showing_namespace_status", test=display_name)
            self._diagnostics().run(display_name)

        self._log.info("tearing_down")
        decision = decide(
            config.ephemeral_namespaces,
            config.retain_on_failure,
            context.failed,
            self._unit.manual_deployment,
        )
        if decision.retained_for_inspection and not config.ephemeral_namespaces:
            self._log.warning("test_failed_not_deleting_resources", test=display_name)

        if decision.delete_application:
            self._deployment_manager().undeploy(config.manifest_path)

        hook_error = self._run_hooks_isolated(self._unit.post_undeploy_hooks)

        resources = decide(
            config.ephemeral_namespaces,
            config.retain_on_failure,
            context.failed,
            manual_deployment=False,
        )
        if resources.delete_application:
            for deployed in reversed(context.deployed_additional):
                self._additional_manager().undeploy(deployed)

        if context.namespace is not None:
            if decision.drop_namespace:
                try:
                    self._namespace_manager().drop(context.namespace)
                except Exception as e:
                    if hook_error is not None:
                        e.add_note(f"Post-undeploy hook also failed: {hook_error!r}")
                    raise
            else:
                self._log.warning(
                    "test_failed_keeping_ephemeral_namespace",
                    test=display_name,
                    namespace=context.namespace.name,
                )

        if hook_error is not None:
            raise hook_error

    def _diagnostics(self) -> FailureDiagnosticsRunner:
        registry = self._failure_actions
        if registry is None:
            registry = FailureActionRegistry.default()
        return FailureDiagnosticsRunner(
            registry,
            self._injector.inject_fields,
            disabled=self._config.disabled_failure_actions,
        )

    # =========================================================================
    # Hooks
    # =========================================================================

    def _run_hooks(self, hooks: tuple[HookMethod, ...]) -> None:
        for hook in hooks:
            self._log.info("running_hook", hook=hook.site)
            self._injector.call(hook.resolve(), hook.site)

    def _run_hooks_isolated(self, hooks: tuple[HookMethod, ...]) -> Exception | None:
        first_error: Exception | None = None
        for hook in hooks:
            try:
                self._run_hooks((hook,))
            except Exception as e:
                self._log.error("hook_failed", hook=hook.site, error=str(e))
                if first_error is None:
                    first_error = e
        return first_error
