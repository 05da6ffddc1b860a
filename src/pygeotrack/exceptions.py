"""Custom exception hierarchy for pygeotrack."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for all pygeotrack errors."""


class TrackerConfigError(TrackerError):
    """Invalid or missing configuration (including bad intervals)."""


class AcquisitionError(TrackerError):
    """A fix could not be obtained for this tick."""


class AcquisitionTimeout(AcquisitionError):
    """The provider did not deliver a fix within the allowed wait."""

    def __init__(self, message: str = "fix request timed out", *, timeout_ms: int | None = None) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message)


class AcquisitionUnavailable(AcquisitionError):
    """The provider is unavailable (disabled, permission revoked, unreachable).

    ``status_code`` is set when the provider is reached over HTTP and
    answered with a non-200 status.
    """

    def __init__(self, message: str = "location provider unavailable", *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class InvalidFixError(TrackerError):
    """A fix was delivered but failed coordinate/precision validation."""

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class StorageFault(TrackerError):
    """The sample store failed to persist or read samples."""


class ConcurrentStartRejected(TrackerError):
    """A second collection loop was about to run in this process.

    This is a programming-contract fault: the lifecycle controller is the
    only component allowed to start loops and it must never do so twice.
    """
