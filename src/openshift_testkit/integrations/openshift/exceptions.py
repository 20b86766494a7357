"""OpenShift integration custom exceptions."""

from __future__ import annotations

from collections.abc import Sequence


class OpenShiftError(Exception):
    """Base exception for OpenShift operations.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the API server (if applicable).
        resource_type: Type of resource involved (e.g., "Route", "ImageStream").
        resource_name: Name of the resource involved.
        namespace: Namespace of the resource (if applicable).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize OpenShiftError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from the API server.
            resource_type: Type of resource involved.
            resource_name: Name of the resource involved.
            namespace: Namespace of the resource.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.namespace = namespace

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.resource_type and self.resource_name:
            loc = f"[{self.resource_type}/{self.resource_name}"
            if self.namespace:
                loc += f" in {self.namespace}"
            loc += "]"
            parts.append(loc)
        return " ".join(parts)


class OpenShiftConnectionError(OpenShiftError):
    """Raised when the cluster cannot be reached or kubeconfig cannot be loaded."""

    def __init__(
        self,
        message: str = "Failed to connect to OpenShift cluster",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message)
        self.original_error = original_error


class OpenShiftAuthError(OpenShiftError):
    """Raised on authentication or authorization failures (401/403)."""

    def __init__(
        self,
        message: str = "OpenShift authentication/authorization failed",
        status_code: int | None = 401,
        reason: str | None = None,
    ) -> None:
        super().__init__(message=message, status_code=status_code)
        self.reason = reason


class OpenShiftNotFoundError(OpenShiftError):
    """Raised when a requested resource does not exist (404)."""

    def __init__(
        self,
        message: str = "OpenShift resource not found",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' not found"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=404,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class OpenShiftConflictError(OpenShiftError):
    """Raised when a resource already exists or was modified concurrently (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' already exists"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=409,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class OpenShiftValidationError(OpenShiftError):
    """Raised when the API server rejects a resource specification (400/422)."""

    def __init__(
        self,
        message: str = "Invalid resource specification",
        status_code: int | None = 422,
    ) -> None:
        super().__init__(message=message, status_code=status_code)


class AwaitTimeoutError(OpenShiftError, TimeoutError):
    """Raised when a polled condition does not become true before its deadline."""

    def __init__(self, description: str, elapsed_seconds: float) -> None:
        """Initialize AwaitTimeoutError.

        Args:
            description: What was being awaited (names the resource).
            elapsed_seconds: How long polling went on before giving up.
        """
        super().__init__(
            message=f"Timed out waiting for {description} after {elapsed_seconds:.1f}s",
        )
        self.description = description
        self.elapsed_seconds = elapsed_seconds


class ResourceNeverReadyError(OpenShiftError):
    """Raised when an awaited resource can never become ready.

    Polling stops immediately instead of running into the timeout.
    """


class ExternalProcessError(OpenShiftError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int | None,
        output: str = "",
        message: str | None = None,
    ) -> None:
        """Initialize ExternalProcessError.

        Args:
            args: The command line that was run.
            returncode: Exit status, or None if the process was killed.
            output: Captured combined output of the process.
            message: Override for the default message.
        """
        command = " ".join(args)
        if message is None:
            message = f"Command '{command}' failed with exit code {returncode}"
        super().__init__(message=message)
        self.command = list(args)
        self.returncode = returncode
        self.output = output


class ConfigurationError(OpenShiftError):
    """Raised when a test class or the environment is set up incorrectly.

    Examples are a missing manifest, a malformed hook method or an
    unsupported injection type. Never retried.
    """


class DiagnosticActionError(OpenShiftError):
    """Raised when a failure diagnostic action fails.

    Only ever logged; never propagated out of teardown.
    """

    def __init__(self, action_name: str, original_error: Exception) -> None:
        super().__init__(message=f"Failure action '{action_name}' failed: {original_error}")
        self.action_name = action_name
        self.original_error = original_error
