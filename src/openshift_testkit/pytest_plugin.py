"""pytest plugin running marked test classes against OpenShift.

Registered through the ``pytest11`` entry point. A test class marked with
``@pytest.mark.openshift_test`` gets a :class:`LifecycleController`: setup
before its first test, field injection before every test and teardown after
its last one.

Example:
    ```python
    @pytest.mark.openshift_test(additional_resources=["postgres.yml"])
    class TestTodoApp:
        url: Annotated[httpx.URL, TestResource()]

        def test_list(self, http_client):
            assert http_client.get("/todos").status_code == 200
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Annotated, Any

import httpx
import pytest
from pydantic import ValidationError

from openshift_testkit.core.config import TestkitConfig
from openshift_testkit.core.metadata import AppMetadata
from openshift_testkit.integrations.openshift.client import OpenShiftClient
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError
from openshift_testkit.integrations.openshift.knative import KnativeClient
from openshift_testkit.lifecycle.controller import LifecycleController
from openshift_testkit.lifecycle.injection import InjectionRequest, ResourceKind
from openshift_testkit.lifecycle.markers import WithName
from openshift_testkit.lifecycle.unit import TestUnitConfig
from openshift_testkit.logging import configure_logging
from openshift_testkit.services.openshift.await_util import AwaitUtil
from openshift_testkit.services.openshift.openshift_util import OpenShiftUtil
from openshift_testkit.services.openshift.route_resolver import HttpClientConfig

MARKER = "openshift_test"

CONFIG_KEY = pytest.StashKey[TestkitConfig]()
CONTROLLER_KEY = pytest.StashKey[LifecycleController]()

ControllerFactory = Callable[[TestUnitConfig], LifecycleController]


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("openshift", "OpenShift test lifecycle")
    group.addoption(
        "--openshift-log-file",
        dest="openshift_log_file",
        default=None,
        help="Also write lifecycle events as JSON lines to this file",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        f"{MARKER}(manual_deployment=False, app_metadata=None, additional_resources=()): "
        "deploy the application to OpenShift around the marked test class",
    )
    try:
        testkit_config = TestkitConfig.from_env()
    except (ValidationError, ValueError, OSError) as e:
        raise pytest.UsageError(f"Invalid OpenShift test configuration: {e}") from e
    config.stash[CONFIG_KEY] = testkit_config

    log_file = config.getoption("openshift_log_file", default=None)
    configure_logging(
        level=testkit_config.log_level,
        json_output=testkit_config.log_json,
        log_file=Path(log_file) if log_file else None,
    )


def _controller_for(node: pytest.Item | pytest.Class) -> LifecycleController | None:
    class_node = node if isinstance(node, pytest.Class) else node.getparent(pytest.Class)
    if class_node is None:
        return None
    return class_node.stash.get(CONTROLLER_KEY, None)


@pytest.hookimpl(wrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> Any:
    report = yield
    if report.failed:
        controller = _controller_for(item)
        if controller is not None:
            controller.record_failure()
    return report


# =============================================================================
# Lifecycle Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def testkit_config(pytestconfig: pytest.Config) -> TestkitConfig:
    """Configuration read from ``TS_*`` environment variables."""
    return pytestconfig.stash[CONFIG_KEY]


@pytest.fixture(scope="session")
def openshift_controller_factory(testkit_config: TestkitConfig) -> ControllerFactory:
    """Creates the controller of a marked test class; override to customize."""

    def factory(unit: TestUnitConfig) -> LifecycleController:
        return LifecycleController(unit, testkit_config)

    return factory


@pytest.fixture(scope="class", autouse=True)
def _openshift_lifecycle(request: pytest.FixtureRequest) -> LifecycleController | None:
    marker = request.node.get_closest_marker(MARKER)
    if marker is None or request.cls is None:
        return None

    factory: ControllerFactory = request.getfixturevalue("openshift_controller_factory")
    unit = TestUnitConfig.from_class(request.cls, **marker.kwargs)
    controller = factory(unit)
    request.node.stash[CONTROLLER_KEY] = controller
    # teardown must also run after a failed setup
    request.addfinalizer(controller.after_all)
    controller.before_all()
    return controller


@pytest.fixture(autouse=True)
def _openshift_test_case(request: pytest.FixtureRequest, _openshift_lifecycle: Any) -> None:
    controller = _controller_for(request.node)
    if controller is None:
        return
    controller.before_each(request.node.name)
    if request.instance is not None:
        with controller.intercept():
            controller.inject_fields(request.instance)


@pytest.fixture
def openshift_controller(request: pytest.FixtureRequest) -> LifecycleController:
    """Controller of the enclosing marked test class."""
    controller = _controller_for(request.node)
    if controller is None:
        raise ConfigurationError(
            f"{request.node.nodeid} is not in a class marked with @pytest.mark.{MARKER}"
        )
    return controller


# =============================================================================
# Resource Fixtures
# =============================================================================


def _resolve(
    controller: LifecycleController, request: pytest.FixtureRequest, kind: ResourceKind
) -> Any:
    return controller.resolve(InjectionRequest(kind=kind, site=f"fixture {request.fixturename}"))


@pytest.fixture
def openshift_client(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> OpenShiftClient:
    return _resolve(openshift_controller, request, ResourceKind.OPENSHIFT_CLIENT)


@pytest.fixture
def knative_client(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> KnativeClient:
    return _resolve(openshift_controller, request, ResourceKind.KNATIVE_CLIENT)


@pytest.fixture
def app_metadata(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> AppMetadata:
    return _resolve(openshift_controller, request, ResourceKind.APP_METADATA)


@pytest.fixture
def await_util(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> AwaitUtil:
    return _resolve(openshift_controller, request, ResourceKind.AWAIT_UTIL)


@pytest.fixture
def openshift_util(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> OpenShiftUtil:
    return _resolve(openshift_controller, request, ResourceKind.OPENSHIFT_UTIL)


@pytest.fixture
def app_url(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> httpx.URL:
    """URL of the application including its HTTP root."""
    return _resolve(openshift_controller, request, ResourceKind.URL)


@pytest.fixture
def http_config(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> HttpClientConfig:
    return _resolve(openshift_controller, request, ResourceKind.HTTP_CONFIG)


@pytest.fixture
def http_client(http_config: HttpClientConfig) -> Iterator[httpx.Client]:
    """HTTP client rooted at the application under test."""
    with http_config.create_client() as client:
        yield client


@pytest.fixture
def test_resource(
    openshift_controller: LifecycleController, request: pytest.FixtureRequest
) -> Callable[..., Any]:
    """Resolve any injectable type on demand.

    Example:
        ```python
        def test_admin(test_resource):
            admin_url = test_resource(httpx.URL, route="admin")
        ```
    """

    def resolve(resource_type: type, route: str | None = None) -> Any:
        annotation: Any = resource_type
        if route is not None:
            annotation = Annotated[resource_type, WithName(route)]
        site = f"{request.node.name}({resource_type.__name__})"
        return openshift_controller.resolve(InjectionRequest.for_annotation(annotation, site))

    return resolve
