"""
sofafeed - typed client for the SOFA macOS and iOS software update feeds.
"""

from .client import (
    FetchArgs,
    fetch,
    fetch_and_parse,
    fetch_and_parse_ios_feed,
    fetch_and_parse_macos_feed,
    parse,
    parse_ios_feed,
    parse_macos_feed,
    parse_string,
)
from .config import FeedSettings, load_settings
from .exceptions import (
    ConfigFileError,
    ConfigurationError,
    DecodeError,
    FetchError,
    FieldTypeError,
    InvalidTimestampError,
    MalformedFeedError,
    RequestBuildError,
    ResponseBodyError,
    SofaFeedError,
    TransportError,
    UnexpectedStatusError,
    UnknownFeedTypeError,
)
from .feeds import (
    Feed,
    FeedType,
    FetchContext,
    IOSFeed,
    MacOSFeed,
    find_cve_inconsistencies,
    select_variant,
)

__all__ = [
    # Entry points
    "FetchArgs",
    "fetch",
    "fetch_and_parse",
    "fetch_and_parse_ios_feed",
    "fetch_and_parse_macos_feed",
    "parse",
    "parse_ios_feed",
    "parse_macos_feed",
    "parse_string",
    "select_variant",
    "FetchContext",
    # Documents
    "Feed",
    "FeedType",
    "IOSFeed",
    "MacOSFeed",
    "find_cve_inconsistencies",
    # Configuration
    "FeedSettings",
    "load_settings",
    # Errors
    "SofaFeedError",
    "ConfigurationError",
    "UnknownFeedTypeError",
    "ConfigFileError",
    "FetchError",
    "RequestBuildError",
    "TransportError",
    "UnexpectedStatusError",
    "ResponseBodyError",
    "DecodeError",
    "MalformedFeedError",
    "FieldTypeError",
    "InvalidTimestampError",
]
