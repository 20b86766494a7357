"""Unit tests for the cleanup decision."""

from __future__ import annotations

import itertools

import pytest

from openshift_testkit.lifecycle.retention import RetentionDecision, decide


@pytest.mark.unit
class TestDecide:
    """Test the cleanup decision table."""

    @pytest.mark.parametrize(
        ("ephemeral", "retain", "failed"),
        list(itertools.product([False, True], repeat=3)),
    )
    def test_automatic_deployment(self, ephemeral: bool, retain: bool, failed: bool) -> None:
        decision = decide(ephemeral, retain, failed, manual_deployment=False)

        retained = retain and failed
        assert decision == RetentionDecision(
            delete_application=not ephemeral and not retained,
            drop_namespace=ephemeral and not retained,
            retained_for_inspection=retained,
        )

    @pytest.mark.parametrize(
        ("ephemeral", "retain", "failed"),
        list(itertools.product([False, True], repeat=3)),
    )
    def test_manual_deployment_never_deletes_application(
        self, ephemeral: bool, retain: bool, failed: bool
    ) -> None:
        decision = decide(ephemeral, retain, failed, manual_deployment=True)

        retained = retain and failed
        assert decision == RetentionDecision(
            delete_application=False,
            drop_namespace=ephemeral and not retained,
            retained_for_inspection=retained,
        )

    def test_shared_namespace_success_deletes_application(self) -> None:
        decision = decide(False, False, False, False)

        assert decision.delete_application is True
        assert decision.drop_namespace is False

    def test_ephemeral_failure_with_retain_keeps_everything(self) -> None:
        decision = decide(True, True, True, False)

        assert decision.delete_application is False
        assert decision.drop_namespace is False
        assert decision.retained_for_inspection is True

    def test_failure_without_retain_cleans_up(self) -> None:
        assert decide(True, False, True, False).drop_namespace is True
        assert decide(False, False, True, False).delete_application is True
