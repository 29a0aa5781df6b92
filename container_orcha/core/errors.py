"""
Error classes for the Container Orchestration System.

Lifecycle operations in the orchestrator turn these into failed
OperationResults; the API layer maps them to HTTP status codes.
"""

from typing import Optional


class OrchestratorError(Exception):
    """Base exception for the orchestrator."""
    pass


class NotFoundError(OrchestratorError):
    """A task, or the container a task refers to, does not exist."""
    pass


class ValidationError(OrchestratorError):
    """A task definition is malformed."""
    pass


class PersistenceError(OrchestratorError):
    """The state file could not be written."""
    pass


class ConfigurationError(OrchestratorError):
    """Invalid configuration file or value."""
    pass


class RuntimeInvocationError(OrchestratorError):
    """
    A container runtime call failed.

    Raised for non-zero exit codes, binaries that cannot be launched,
    timeouts and SDK errors. The captured stderr is kept so callers can
    report it.
    """

    def __init__(self, message: str, stderr: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode

    def __str__(self) -> str:
        message = super().__str__()
        detail = self.stderr.strip()
        if detail and detail not in message:
            return f"{message}: {detail}"
        return message
