"""Custom exception hierarchy for dovpn configuration and deployments."""


class DoVPNError(Exception):
    """Base exception for all dovpn errors.

    All dovpn-specific exceptions inherit from this class, enabling
    centralized exception handling in the CLI.
    """

    pass


class ConfigError(DoVPNError):
    """Exception raised for configuration errors.

    Raised when settings cannot be loaded, parsed or validated.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class DeploymentError(DoVPNError):
    """Exception raised when a deployment step fails.

    Every lifecycle failure carries the name of the step that failed so that
    callers can tell provisioning problems apart from SSH or rendering ones.

    Attributes:
        operation: Lifecycle step that failed (e.g. "provision", "firewall")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize DeploymentError with the failing operation.

        Args:
            operation: Lifecycle step that failed
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class ProvisioningError(DeploymentError):
    """Raised when the cloud provider rejects or fails a request."""

    def __init__(self, message: str, operation: str = "provision") -> None:
        """Create a provisioning error for the given operation."""
        super().__init__(operation=operation, message=message)


class NetworkTimeoutError(DeploymentError):
    """Raised when a bounded polling loop runs out of attempts.

    Attributes:
        attempts: Number of attempts made before giving up
    """

    def __init__(self, operation: str, attempts: int, message: str = "") -> None:
        """Initialize NetworkTimeoutError.

        Args:
            operation: What was being waited for (e.g. "waiting for port 22")
            attempts: Number of attempts made
            message: Optional override for the default message
        """
        self.attempts = attempts
        super().__init__(
            operation=operation,
            message=message or f"timed out after {attempts} attempts",
        )


class RemoteExecutionError(DeploymentError):
    """Raised when a remote shell session or command fails.

    Attributes:
        host: Remote host the command was sent to
    """

    def __init__(self, host: str, message: str, operation: str = "remote") -> None:
        """Initialize RemoteExecutionError.

        Args:
            host: Remote host address
            message: Descriptive error message
            operation: Lifecycle step the command belonged to
        """
        self.host = host
        super().__init__(operation=operation, message=f"{host}: {message}")


class ArtifactFetchError(DeploymentError):
    """Raised when an artifact cannot be fetched or written.

    Attributes:
        artifact: Name of the artifact that failed
    """

    def __init__(self, artifact: str, message: str) -> None:
        """Create an artifact error naming the failing artifact."""
        self.artifact = artifact
        super().__init__(
            operation="artifacts",
            message=f"Failed to retrieve artifact '{artifact}': {message}",
        )


class ConfigRenderError(DeploymentError):
    """Raised when user-data or a client profile cannot be rendered.

    Attributes:
        target: Document being rendered (e.g. "apple", "android", "user-data")
    """

    def __init__(self, target: str, message: str) -> None:
        """Create a render error for the given target document."""
        self.target = target
        super().__init__(
            operation="render",
            message=f"Failed to render {target} configuration: {message}",
        )


class LocalApplyError(DeploymentError):
    """Raised when a profile cannot be added to the local OS.

    Never fatal to a deployment run; the orchestrator logs it and continues.

    Attributes:
        path: Profile path that was being applied
    """

    def __init__(self, path: str, message: str) -> None:
        """Create a local apply error for the given profile path."""
        self.path = path
        super().__init__(
            operation="local_apply",
            message=f"Failed to add profile {path}: {message}",
        )


class PublicIPError(DeploymentError):
    """Raised when the public IP address of this machine cannot be determined."""

    def __init__(self, url: str, original_error: Exception | None = None) -> None:
        """Create a lookup error for the given probe URL."""
        self.url = url
        message = f"Could not determine public IP via {url}"
        if original_error:
            message += f": {original_error}"
        super().__init__(operation="public_ip", message=message)
