"""Exception types raised by the agent."""


class VnicAgentError(Exception):
    """Base class for agent errors."""


class ProvisioningError(VnicAgentError):
    """A provisioning step failed and the workflow cannot continue."""


class MetadataError(ProvisioningError):
    """Instance metadata was unavailable or incomplete."""


class OciCliError(ProvisioningError):
    """An OCI CLI invocation exited non-zero or returned unusable output."""

    def __init__(self, operation: str, message: str, returncode: int | None = None):
        self.operation = operation
        self.returncode = returncode
        super().__init__(f"{operation}: {message}")
