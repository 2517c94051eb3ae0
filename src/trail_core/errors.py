"""
Error taxonomy. Every fatal condition is one of these; the CLI is the only
place that turns them into a process exit.
"""


class TrailStopError(Exception):
    """Base class for fatal trailstop errors."""


class ConfigInvalidError(TrailStopError):
    """Config file missing, unparseable, or failing validation."""


class AuthExpiredError(TrailStopError):
    """Still unauthorized after refreshing the credentials."""


class RefreshFailedError(TrailStopError):
    """The refresh-token exchange failed. The operator must re-authenticate."""


class TransportFailureError(TrailStopError):
    """A fetch returned neither 200 nor 401, or the connection failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseFormatError(TrailStopError):
    """An API response body did not have the expected shape."""


class PersistenceError(TrailStopError):
    """Refreshed credentials could not be written back to disk."""
