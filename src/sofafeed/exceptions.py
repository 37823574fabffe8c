"""
Custom exceptions for the sofafeed package.

Every failure raised by the package derives from SofaFeedError and carries a
``stage`` tag naming the part of the pipeline that produced it, so callers can
tell a misconfiguration from a network problem from a bad payload without
matching on message text.
"""

from typing import Any, Optional

STAGE_CONFIG = "config"
STAGE_FETCH = "fetch"
STAGE_DECODE = "decode"


class SofaFeedError(Exception):
    """
    Base exception for all sofafeed errors.

    All custom exceptions in sofafeed inherit from this class to allow for
    easy catching of all package-specific errors.
    """

    stage: Optional[str] = None

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SofaFeedError):
    """
    Exception raised when the caller's configuration is invalid.

    This includes:
    - Unrecognized feed type discriminators
    - Unreadable or invalid configuration files
    - Invalid override values
    """

    stage = STAGE_CONFIG


class UnknownFeedTypeError(ConfigurationError):
    """
    Exception raised when a feed type is neither macOS nor iOS.

    Attributes:
        feed_type: The discriminator value that was not recognized.
    """

    def __init__(self, feed_type: Any, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            feed_type: The unrecognized discriminator value.
            details: Optional additional context.
        """
        super().__init__(f"Unknown feed type: {feed_type!r}", details)
        self.feed_type = feed_type


class ConfigFileError(ConfigurationError):
    """
    Exception raised when a configuration file cannot be read or is invalid.

    Attributes:
        path: The configuration file path, if the error came from a file.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Fetch Errors
# =============================================================================


class FetchError(SofaFeedError):
    """
    Base exception for failures while retrieving a feed over HTTP.

    Attributes:
        url: The feed URL that was being fetched when the error occurred.
    """

    stage = STAGE_FETCH

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the fetch exception.

        Args:
            message: The primary error message.
            url: The URL that was being fetched.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.url = url


class RequestBuildError(FetchError):
    """Exception raised when the HTTP request cannot be constructed (bad URL or context)."""

    pass


class TransportError(FetchError):
    """
    Exception raised when the request fails before a response is received.

    This includes:
    - Connection and DNS failures
    - Connection and read timeouts
    - SSL/TLS errors
    - Cancellation or an expired deadline
    """

    pass


class UnexpectedStatusError(FetchError):
    """
    Exception raised when the server answers with anything other than 200 OK.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        status_code: int,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(
            f"Unexpected HTTP status code: status_code={status_code}", url, details
        )
        self.status_code = status_code


class ResponseBodyError(FetchError):
    """Exception raised when reading the response body fails after headers arrived."""

    pass


# =============================================================================
# Decode Errors
# =============================================================================


class DecodeError(SofaFeedError):
    """
    Base exception for failures turning feed bytes into a typed document.

    Attributes:
        path: JSON path of the offending value (e.g. ``$.OSVersions[0].Latest``),
            or None when the failure is not tied to a single value.
    """

    stage = STAGE_DECODE

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class MalformedFeedError(DecodeError):
    """Exception raised for empty input, invalid UTF-8, invalid JSON or a non-object root."""

    pass


class FieldTypeError(DecodeError):
    """
    Exception raised when a JSON value has the wrong type for its field.

    Attributes:
        expected: Name of the expected JSON type.
        actual: Name of the JSON type that was found.
    """

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Cannot decode {actual} into {expected}",
            path=path,
            details=f"at {path}",
        )
        self.expected = expected
        self.actual = actual


class InvalidTimestampError(DecodeError):
    """
    Exception raised when a date-time string is not valid RFC 3339.

    Attributes:
        value: The string that failed to parse.
    """

    def __init__(self, path: str, value: str) -> None:
        super().__init__(
            f"Invalid RFC 3339 timestamp {value!r}",
            path=path,
            details=f"at {path}",
        )
        self.value = value
