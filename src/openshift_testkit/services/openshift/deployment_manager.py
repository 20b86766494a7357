"""Deployment of the application under test.

Applies the generated manifest, feeds the build output into the cluster-side
binary build and deletes the manifest's resources again at teardown.
"""

from __future__ import annotations

import os
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from openshift_testkit.integrations.openshift.exceptions import ConfigurationError, OpenShiftError
from openshift_testkit.services.openshift.image_overrides import apply_image_overrides

if TYPE_CHECKING:
    from collections.abc import Mapping

    from openshift_testkit.integrations.openshift.oc_client import OcClient

logger = structlog.get_logger()

NATIVE_BINARY_SUFFIX = "-runner"
ARCHIVE_SUFFIX = ".tar.gz"
IMAGE_STREAM_KIND = "ImageStream"
LIST_KIND = "List"


@dataclass(frozen=True)
class DeployedResourceSet:
    """Resources created from one manifest file; enough to delete them again."""

    manifest: Path
    namespace: str | None = None


def load_manifest(path: Path) -> list[dict[str, Any]]:
    """Parse every resource of a (multi-document) manifest file.

    ``List`` documents are flattened into their items.

    Raises:
        ConfigurationError: If the file is missing or is not valid YAML.
    """
    if not path.is_file():
        raise ConfigurationError(f"Missing manifest {path}")

    yaml = YAML(typ="safe")
    try:
        documents = list(yaml.load_all(path.read_text(encoding="utf-8")))
    except YAMLError as e:
        raise ConfigurationError(f"Failed to parse manifest {path}: {e}") from e

    resources: list[dict[str, Any]] = []
    for doc in documents:
        if not isinstance(doc, dict):
            continue
        if doc.get("kind") == LIST_KIND:
            resources.extend(item for item in doc.get("items", []) or [] if isinstance(item, dict))
        else:
            resources.append(doc)
    return resources


def find_native_binary(build_dir: Path) -> Path | None:
    """Find a pre-built native executable in the build output tree.

    Native builds produce a single ``<name>-runner`` file; the first match in
    sorted order is returned.
    """
    if not build_dir.is_dir():
        return None
    for path in sorted(build_dir.rglob(f"*{NATIVE_BINARY_SUFFIX}")):
        if path.is_file():
            return path
    return None


class DeploymentManager:
    """Deploys and undeploys the application described by a manifest file."""

    def __init__(self, oc: OcClient) -> None:
        self._oc = oc
        self._log = logger.bind(entity="deployment", namespace=oc.namespace)

    def apply(self, manifest: Path) -> DeployedResourceSet:
        """Create the manifest's resources; a failure is not retried.

        Raises:
            ConfigurationError: If the manifest does not exist.
            ExternalProcessError: If ``oc apply`` fails.
        """
        if not manifest.is_file():
            raise ConfigurationError(
                f"Missing {manifest}, did you add the quarkus-openshift extension?"
            )
        self._log.info("deploying_application", manifest=str(manifest))
        self._oc.apply(manifest)
        return DeployedResourceSet(manifest=manifest, namespace=self._oc.namespace)

    def apply_image_overrides(self, manifest: Path, overrides: Mapping[str, str]) -> list[str]:
        """Point the manifest at overridden images before it is applied."""
        return apply_image_overrides(manifest, overrides)

    def image_streams_to_await(self, manifest: Path, app_name: str) -> list[str]:
        """Image streams declared by the manifest, except the application's own.

        The application's image stream is only filled by the build, so it
        cannot be awaited before building.
        """
        names = []
        for resource in load_manifest(manifest):
            if resource.get("kind") != IMAGE_STREAM_KIND:
                continue
            name = (resource.get("metadata") or {}).get("name")
            if name and name != app_name:
                names.append(name)
        return names

    def build_and_run(self, app_name: str, build_dir: Path) -> None:
        """Run the cluster-side binary build of the application.

        A native executable found under ``build_dir`` is uploaded on its own;
        otherwise the whole build directory is uploaded as an archive whose
        single root directory is named like ``build_dir``. The temporary
        archive is removed even when the build fails.

        Raises:
            ExternalProcessError: If the build fails.
        """
        binary = find_native_binary(build_dir)
        if binary is not None:
            self._log.info("building_from_native_binary", app=app_name, binary=str(binary))
            self._oc.start_build(app_name, from_file=binary)
            return

        fd, archive_name = tempfile.mkstemp(prefix=f"{app_name}-", suffix=ARCHIVE_SUFFIX)
        os.close(fd)
        archive = Path(archive_name)
        try:
            self._log.info("building_from_archive", app=app_name, build_dir=str(build_dir))
            with tarfile.open(archive, "w:gz") as tar:
                tar.add(build_dir, arcname=build_dir.resolve().name)
            self._oc.start_build(app_name, from_archive=archive)
        finally:
            archive.unlink(missing_ok=True)

    def undeploy(self, resources: DeployedResourceSet | Path) -> bool:
        """Delete the resources of a manifest; absent resources are fine.

        Failures are logged and reported, never raised, so teardown can go on.

        Returns:
            True when deletion succeeded.
        """
        manifest = resources.manifest if isinstance(resources, DeployedResourceSet) else resources
        self._log.info("undeploying_application", manifest=str(manifest))
        try:
            self._oc.delete(manifest)
        except OpenShiftError as e:
            self._log.error("undeploy_failed", manifest=str(manifest), error=str(e))
            return False
        return True
