"""
SOFA v1 feed schema, decoding and retrieval.

Core Components:
- models: Immutable document model shared by the macOS and iOS feeds
- decoder: JSON bytes to typed document
- variants: Feed type to endpoint and document shape
- fetcher: Single-request HTTP retrieval
- validation: CVE consistency checks on decoded feeds
"""

from .decoder import decode_feed, decode_feed_string, parse_timestamp
from .fetcher import FetchContext, fetch_feed_bytes, get_user_agent
from .models import (
    IPSW,
    UMA,
    Feed,
    FeedType,
    InstallationApps,
    IOSFeed,
    MacOSExtension,
    MacOSFeed,
    Model,
    OSVersion,
    OSVersionDetails,
    SecurityRelease,
    SupportedModel,
    XProtectPayloads,
    XProtectPlistConfigData,
)
from .validation import (
    CVECountMismatch,
    CVEInconsistency,
    exploited_in,
    find_cve_count_mismatches,
    find_cve_inconsistencies,
)
from .variants import FeedVariant, resolve_feed_type, select_variant

__all__ = [
    # Models
    "Feed",
    "FeedType",
    "MacOSFeed",
    "IOSFeed",
    "MacOSExtension",
    "OSVersion",
    "OSVersionDetails",
    "SecurityRelease",
    "SupportedModel",
    "Model",
    "InstallationApps",
    "UMA",
    "IPSW",
    "XProtectPayloads",
    "XProtectPlistConfigData",
    # Decoding
    "decode_feed",
    "decode_feed_string",
    "parse_timestamp",
    # Variant selection
    "FeedVariant",
    "resolve_feed_type",
    "select_variant",
    # Fetching
    "FetchContext",
    "fetch_feed_bytes",
    "get_user_agent",
    # Validation
    "CVEInconsistency",
    "CVECountMismatch",
    "find_cve_inconsistencies",
    "find_cve_count_mismatches",
    "exploited_in",
]
