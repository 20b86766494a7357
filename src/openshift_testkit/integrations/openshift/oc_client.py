"""OpenShift CLI wrapper.

Wraps the ``oc`` binary for the operations that have no convenient API
equivalent: applying and deleting manifest files, managing projects and
starting binary builds.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from openshift_testkit.integrations.openshift.command import CommandResult, CommandRunner
from openshift_testkit.integrations.openshift.exceptions import ConfigurationError

if TYPE_CHECKING:
    from openshift_testkit.core.config import TestkitConfig

logger = structlog.get_logger()


class OcBinaryNotFoundError(ConfigurationError):
    """Raised when the oc binary is not found in PATH."""

    def __init__(self) -> None:
        super().__init__(
            message=(
                "oc binary not found in PATH. Install the OpenShift CLI or set TS_OC_BINARY."
            ),
        )


class OcClient:
    """Client for the ``oc`` command line tool.

    Every call is attempt-once; retries are left to the caller.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        binary_path: str | None = None,
        namespace: str | None = None,
        kube_context: str | None = None,
        kubeconfig: str | None = None,
    ) -> None:
        """Initialize the oc client.

        Args:
            runner: Command runner used for every invocation.
            binary_path: Explicit path to the oc binary, or None to search PATH.
            namespace: Namespace passed as ``-n`` to namespaced commands.
            kube_context: kubeconfig context passed to every command, or None
                for oc's current context.
            kubeconfig: kubeconfig file passed to every command, or None for
                oc's default lookup.
        """
        self._runner = runner
        self._binary = self._find_binary(binary_path)
        self._namespace = namespace
        self._kube_context = kube_context
        self._kubeconfig = kubeconfig
        self._log = logger.bind(binary=self._binary, namespace=namespace, context=kube_context)

    @staticmethod
    def _find_binary(binary_path: str | None) -> str:
        if binary_path:
            path = Path(binary_path)
            if path.exists():
                return str(path.resolve())
            found = shutil.which(binary_path)
            if not found:
                raise OcBinaryNotFoundError()
            return found

        found = shutil.which("oc")
        if not found:
            raise OcBinaryNotFoundError()
        return found

    @classmethod
    def from_config(cls, config: TestkitConfig, namespace: str | None = None) -> OcClient:
        """Build a client targeting the cluster selected by ``config``."""
        return cls(
            CommandRunner(timeout=config.command_timeout),
            binary_path=config.oc_binary,
            namespace=namespace,
            kube_context=config.kube_context,
            kubeconfig=config.kubeconfig,
        )

    @property
    def namespace(self) -> str | None:
        return self._namespace

    def with_namespace(self, namespace: str | None) -> OcClient:
        """Return a client bound to another namespace, sharing the runner."""
        return OcClient(
            self._runner,
            binary_path=self._binary,
            namespace=namespace,
            kube_context=self._kube_context,
            kubeconfig=self._kubeconfig,
        )

    def _namespace_args(self) -> list[str]:
        return ["-n", self._namespace] if self._namespace else []

    def _cluster_args(self) -> list[str]:
        args = []
        if self._kubeconfig:
            args.append(f"--kubeconfig={self._kubeconfig}")
        if self._kube_context:
            args.append(f"--context={self._kube_context}")
        return args

    def run(self, *args: str, check: bool = True) -> CommandResult:
        """Run an arbitrary oc command (without the ``oc`` prefix).

        The configured kubeconfig and context are added to every command.
        """
        return self._runner.run([self._binary, *self._cluster_args(), *args], check=check)

    # -----------------------------------------------------------------------
    # Manifests
    # -----------------------------------------------------------------------

    def apply(self, manifest: Path) -> CommandResult:
        """Create or update every resource declared in a manifest file."""
        return self.run("apply", "-f", str(manifest), *self._namespace_args())

    def delete(self, manifest: Path) -> CommandResult:
        """Delete every resource declared in a manifest file.

        Resources that are already gone are not an error.
        """
        return self.run(
            "delete", "-f", str(manifest), "--ignore-not-found", *self._namespace_args()
        )

    # -----------------------------------------------------------------------
    # Projects
    # -----------------------------------------------------------------------

    def new_project(self, name: str) -> CommandResult:
        """Create a project without switching the current kubeconfig context."""
        return self.run("new-project", name, "--skip-config-write")

    def delete_project(self, name: str) -> CommandResult:
        """Delete a project; a project that no longer exists is not an error."""
        return self.run("delete", "project", name, "--ignore-not-found")

    # -----------------------------------------------------------------------
    # Builds
    # -----------------------------------------------------------------------

    def start_build(
        self,
        build_config: str,
        *,
        from_file: Path | None = None,
        from_archive: Path | None = None,
    ) -> CommandResult:
        """Start a binary build and follow it to completion.

        Exactly one of ``from_file`` and ``from_archive`` must be given.
        """
        if (from_file is None) == (from_archive is None):
            raise ValueError("exactly one of from_file and from_archive is required")
        if from_file is not None:
            source = f"--from-file={from_file}"
        else:
            source = f"--from-archive={from_archive}"
        self._log.info("starting_build", build_config=build_config, source=source)
        return self.run("start-build", build_config, source, "--follow", *self._namespace_args())

    # -----------------------------------------------------------------------
    # Diagnostics
    # -----------------------------------------------------------------------

    def status(self) -> CommandResult:
        """Show a project status overview."""
        return self.run("status", "--suggest", *self._namespace_args(), check=False)

    def get(self, *resources: str) -> CommandResult:
        """List resources, e.g. ``get("all")`` or ``get("events")``."""
        return self.run("get", ",".join(resources), *self._namespace_args(), check=False)

    def logs(self, pod: str) -> CommandResult:
        """Fetch the logs of every container of a pod."""
        return self.run("logs", pod, "--all-containers", *self._namespace_args(), check=False)
