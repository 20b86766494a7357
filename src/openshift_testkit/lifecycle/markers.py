"""Markers for declaring injectable dependencies.

Used as ``typing.Annotated`` metadata on attributes of test classes and
failure actions, and on hook method parameters::

    class TestGreeting:
        url: Annotated[httpx.URL, TestResource()]
        admin_url: Annotated[httpx.URL, TestResource(), WithName("admin")]
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TestResource:
    """Marks an attribute or parameter to be injected."""

    __test__ = False


@dataclass(frozen=True)
class WithName:
    """Qualifies an injected URL with the name of the route to resolve."""

    value: str
