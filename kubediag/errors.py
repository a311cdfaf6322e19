"""Error taxonomy shared by the engines, the provider and both front ends.

Each error carries a machine-readable ``code``; the front ends map the
class to a transport status (see ``kubediag.api.app``).
"""

from __future__ import annotations


class DiagnosticsError(Exception):
    """Base class for every error raised by a diagnostics operation."""

    code: str = "INTERNAL_ERROR"


class ValidationError(DiagnosticsError):
    """Missing or invalid input.  The operation was not attempted."""

    code = "INVALID_REQUEST"


class NotFoundError(DiagnosticsError):
    """The target resource does not exist."""

    code = "NOT_FOUND"

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        super().__init__(f"{kind} '{name}' not found in namespace '{namespace}'")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ProviderError(DiagnosticsError):
    """Transport, auth or API failure while reading cluster state."""

    code = "PROVIDER_ERROR"

    def __init__(self, call: str, cause: str) -> None:
        super().__init__(f"{call} failed: {cause}")
        self.call = call
        self.cause = cause


class DeadlineExceededError(DiagnosticsError):
    """The request deadline elapsed before the operation finished."""

    code = "DEADLINE_EXCEEDED"

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(f"{operation} did not finish within {timeout_seconds:g}s")
        self.operation = operation
        self.timeout_seconds = timeout_seconds
