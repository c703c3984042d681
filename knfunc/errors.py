from __future__ import annotations


class KnfuncError(Exception):
    """Base class for every error raised by knfunc."""


class ConfigError(KnfuncError, ValueError):
    """The environment does not describe a usable function."""


class ClusterConnectionError(KnfuncError):
    """No client could be built for the Kubernetes API server."""


class OperationError(KnfuncError):
    """
    A call against the cluster failed.

    The message is prefixed with the name of the failing operation, e.g.
    ``failed to apply knative service: <cause>``.
    """

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause


class ReadinessTimeoutError(KnfuncError, TimeoutError):
    """The service did not become ready within the wait budget."""


class WaitCancelledError(KnfuncError):
    """Waiting for readiness was cancelled from outside."""
