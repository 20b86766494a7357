"""Decides what to clean up once a test class has finished."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetentionDecision:
    """Cleanup to perform at teardown.

    Attributes:
        delete_application: Undeploy the application manifest explicitly.
        drop_namespace: Drop the ephemeral namespace.
        retained_for_inspection: Resources are kept because the run failed
            with retain-on-failure enabled.
    """

    delete_application: bool
    drop_namespace: bool
    retained_for_inspection: bool = False


def decide(
    ephemeral_enabled: bool,
    retain_on_failure_enabled: bool,
    failed: bool,
    manual_deployment: bool,
) -> RetentionDecision:
    """Compute the cleanup of a finished run.

    Dropping an ephemeral namespace reclaims everything in it, so the
    application is only deleted explicitly in a shared namespace. A failed
    run with retain-on-failure keeps both. A manually deployed application
    is never deleted here.
    """
    retained = retain_on_failure_enabled and failed
    if manual_deployment:
        delete_application = False
    else:
        delete_application = not ephemeral_enabled and not retained
    return RetentionDecision(
        delete_application=delete_application,
        drop_namespace=ephemeral_enabled and not retained,
        retained_for_inspection=retained,
    )
