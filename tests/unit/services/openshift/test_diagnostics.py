"""Unit tests for failure diagnostics."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client import ApiException

from openshift_testkit.core.config import TestkitConfig
from openshift_testkit.integrations.openshift.exceptions import DiagnosticActionError
from openshift_testkit.integrations.openshift.models import PodSummary
from openshift_testkit.services.openshift.diagnostics import (
    ENTRY_POINT_GROUP,
    POD_LOG_TAIL_LINES,
    FailureAction,
    FailureActionRegistry,
    FailureDiagnosticsRunner,
    NamespaceStatusAction,
)

executed: list[str] = []


class RecordingAction(FailureAction):
    name = "recording"

    def execute(self) -> None:
        executed.append(self.name)


class BrokenAction(FailureAction):
    name = "broken"

    def execute(self) -> None:
        raise RuntimeError("cluster unreachable")


class LaterAction(FailureAction):
    name = "later"

    def execute(self) -> None:
        executed.append(self.name)


@pytest.fixture(autouse=True)
def reset_executed() -> None:
    executed.clear()


def _registry(*actions: type[FailureAction]) -> FailureActionRegistry:
    registry = FailureActionRegistry()
    for action in actions:
        registry.register(action.name, action)
    return registry


@pytest.mark.unit
class TestFailureActionRegistry:
    """Test FailureActionRegistry."""

    def test_register_preserves_order(self) -> None:
        registry = _registry(RecordingAction, BrokenAction, LaterAction)

        assert registry.names() == ["recording", "broken", "later"]
        assert len(registry) == 3
        assert registry.get("broken") is BrokenAction
        assert registry.get("absent") is None

    def test_register_replaces(self) -> None:
        registry = _registry(RecordingAction)
        registry.register("recording", LaterAction)

        assert registry.get("recording") is LaterAction
        assert len(registry) == 1

    def test_discover_entry_points(self) -> None:
        good = MagicMock()
        good.name = "later"
        good.load.return_value = LaterAction
        bad = MagicMock()
        bad.name = "bad"
        bad.load.side_effect = ImportError("no module")
        registry = FailureActionRegistry()

        with patch("importlib.metadata.entry_points", return_value=[good, bad]) as entry_points:
            discovered = registry.discover()

        entry_points.assert_called_once_with(group=ENTRY_POINT_GROUP)
        assert discovered == ["later"]
        assert registry.names() == ["later"]

    def test_default_contains_builtin(self) -> None:
        with patch("importlib.metadata.entry_points", return_value=[]):
            registry = FailureActionRegistry.default()

        assert registry.get("namespace-status") is NamespaceStatusAction


@pytest.mark.unit
class TestFailureDiagnosticsRunner:
    """Test running actions after a failure."""

    def test_failure_is_isolated(self) -> None:
        runner = FailureDiagnosticsRunner(
            _registry(RecordingAction, BrokenAction, LaterAction), inject=lambda action: None
        )

        errors = runner.run("TestGreeting")

        assert executed == ["recording", "later"]
        assert len(errors) == 1
        assert isinstance(errors[0], DiagnosticActionError)
        assert errors[0].action_name == "broken"
        assert isinstance(errors[0].original_error, RuntimeError)

    def test_disabled_actions_skipped(self) -> None:
        runner = FailureDiagnosticsRunner(
            _registry(RecordingAction, LaterAction),
            inject=lambda action: None,
            disabled=frozenset({"recording"}),
        )

        assert runner.run("TestGreeting") == []
        assert executed == ["later"]

    def test_injection_failure_is_isolated(self) -> None:
        def inject(action: object) -> None:
            if isinstance(action, RecordingAction):
                raise ValueError("cannot inject")

        runner = FailureDiagnosticsRunner(_registry(RecordingAction, LaterAction), inject=inject)

        errors = runner.run("TestGreeting")

        assert [e.action_name for e in errors] == ["recording"]
        assert executed == ["later"]

    def test_injects_every_action(self) -> None:
        injected: list[object] = []
        runner = FailureDiagnosticsRunner(
            _registry(RecordingAction, LaterAction), inject=injected.append
        )

        runner.run("TestGreeting")

        assert [type(a) for a in injected] == [RecordingAction, LaterAction]


@pytest.mark.unit
class TestNamespaceStatusAction:
    """Test the built-in namespace status action."""

    def test_execute(self, mock_os_client: MagicMock) -> None:
        mock_os_client.list_pods.return_value = [PodSummary(name="hello-1", phase="Running")]
        mock_os_client.core_v1.read_namespaced_pod_log.return_value = "started"
        action = NamespaceStatusAction()
        action.oc = mock_os_client
        action.config = TestkitConfig(oc_binary="/usr/bin/oc")

        with patch("openshift_testkit.services.openshift.diagnostics.OcClient") as oc_cls:
            action.execute()

        oc_cls.from_config.assert_called_once_with(action.config, namespace="ts-test")
        cli = oc_cls.from_config.return_value
        cli.status.assert_called_once_with()
        assert [c.args for c in cli.get.call_args_list] == [("all",), ("events",)]
        mock_os_client.core_v1.read_namespaced_pod_log.assert_called_once_with(
            name="hello-1", namespace="ts-test", tail_lines=POD_LOG_TAIL_LINES
        )

    def test_unreadable_pod_log_does_not_stop_other_pods(self, mock_os_client: MagicMock) -> None:
        mock_os_client.list_pods.return_value = [
            PodSummary(name="hello-1", phase="Pending"),
            PodSummary(name="postgres-1", phase="Running"),
        ]
        mock_os_client.core_v1.read_namespaced_pod_log.side_effect = [
            ApiException(status=400, reason="ContainerCreating"),
            "ready to accept connections",
        ]
        action = NamespaceStatusAction()
        action.oc = mock_os_client
        action.config = TestkitConfig(oc_binary="/usr/bin/oc")

        with patch("openshift_testkit.services.openshift.diagnostics.OcClient"):
            action.execute()

        assert [
            c.kwargs["name"] for c in mock_os_client.core_v1.read_namespaced_pod_log.call_args_list
        ] == ["hello-1", "postgres-1"]
