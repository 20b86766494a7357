"""Lifecycle of one test class: setup, injection, diagnostics and teardown."""

from openshift_testkit.lifecycle.markers import TestResource, WithName
from openshift_testkit.lifecycle.retention import RetentionDecision, decide

__all__ = [
    "RetentionDecision",
    "TestResource",
    "WithName",
    "decide",
]
