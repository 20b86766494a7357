"""Ephemeral namespace management.

When ephemeral namespaces are enabled, every test class runs in a freshly
created project with a random name, dropped again at teardown.
"""

from __future__ import annotations

import random
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from openshift_testkit.integrations.openshift.oc_client import OcClient

logger = structlog.get_logger()

NAME_PREFIX = "ts-"
RANDOM_SUFFIX_LENGTH = 10


@dataclass(frozen=True)
class EphemeralNamespace:
    """A disposable, uniquely named project owned by a single test run."""

    name: str

    @classmethod
    def new_with_random_name(cls, rng: random.Random | None = None) -> EphemeralNamespace:
        chooser = rng or random.SystemRandom()
        letters = [chooser.choice(string.ascii_lowercase) for _ in range(RANDOM_SUFFIX_LENGTH)]
        suffix = "".join(letters)
        return cls(name=NAME_PREFIX + suffix)


class NamespaceManager:
    """Creates and drops ephemeral namespaces through the oc CLI."""

    def __init__(self, oc: OcClient) -> None:
        self._oc = oc
        self._log = logger.bind(entity="namespace")

    def create(self, namespace: EphemeralNamespace | None = None) -> EphemeralNamespace:
        """Create an ephemeral namespace.

        Args:
            namespace: Namespace to create; a random one when omitted.

        Raises:
            ExternalProcessError: If the project cannot be created.
        """
        ns = namespace or EphemeralNamespace.new_with_random_name()
        self._log.info("using_ephemeral_namespace", namespace=ns.name)
        self._oc.new_project(ns.name)
        return ns

    def drop(self, namespace: EphemeralNamespace) -> None:
        """Delete an ephemeral namespace; an already absent one is not an error.

        Raises:
            ExternalProcessError: If deletion fails, since the project leaks.
        """
        self._log.info("dropping_ephemeral_namespace", namespace=namespace.name)
        self._oc.delete_project(namespace.name)
