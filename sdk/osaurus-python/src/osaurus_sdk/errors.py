"""Exceptions raised by the Osaurus SDK."""


class OsaurusError(Exception):
    """Base class for all SDK errors."""


class OsaurusDiscoveryFailedError(OsaurusError):
    """No running Osaurus instance could be located or no base URL resolved."""


class OsaurusInvalidResponseError(OsaurusError):
    """The server produced no usable response."""


class OsaurusHTTPError(OsaurusError):
    """The server answered with a status outside the 2xx range."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"Osaurus server returned HTTP {status_code}")


class OsaurusDecodeError(OsaurusError):
    """A response body could not be decoded into the expected payload."""
