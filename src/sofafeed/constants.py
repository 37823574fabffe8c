"""
Constants and configuration values for sofafeed.

This module contains the feed endpoints, timeouts, wire-format patterns and
logging settings used throughout the package.
"""

# SOFA feed endpoints (v1 schema)
SOFA_FEED_BASE = "https://sofafeed.macadmins.io/v1"
MACOS_FEED_URL = f"{SOFA_FEED_BASE}/macos_data_feed.json"
IOS_FEED_URL = f"{SOFA_FEED_BASE}/ios_data_feed.json"

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192

# HTTP request details
USER_AGENT_PRODUCT = "sofafeed"
ACCEPT_HEADER_VALUE = "application/json"
HTTP_STATUS_OK = 200

# Feed type discriminators
FEED_TYPE_MACOS = "macos"
FEED_TYPE_IOS = "ios"

# RFC 3339 date-time as emitted by the feed publisher, e.g. 2025-01-27T00:00:00Z
RFC3339_PATTERN = (
    r"^(\d{4})-(\d{2})-(\d{2})"  # date
    r"T(\d{2}):(\d{2}):(\d{2})"  # time
    r"(?:\.(\d+))?"  # optional fractional seconds
    r"(Z|[+-]\d{2}:\d{2})$"  # UTC designator or numeric offset
)

# Configuration file keys (YAML)
CONFIG_KEY_MACOS_FEED_URL = "MACOS_FEED_URL"
CONFIG_KEY_IOS_FEED_URL = "IOS_FEED_URL"
CONFIG_KEY_REQUEST_TIMEOUT = "REQUEST_TIMEOUT"

# Environment variable names
ENV_PREFIX = "SOFAFEED_"
MACOS_FEED_URL_ENV_VAR = f"{ENV_PREFIX}{CONFIG_KEY_MACOS_FEED_URL}"
IOS_FEED_URL_ENV_VAR = f"{ENV_PREFIX}{CONFIG_KEY_IOS_FEED_URL}"
REQUEST_TIMEOUT_ENV_VAR = f"{ENV_PREFIX}{CONFIG_KEY_REQUEST_TIMEOUT}"
LOG_LEVEL_ENV_VAR = "SOFAFEED_LOG_LEVEL"

# Logging configuration
LOGGER_NAME = "sofafeed"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
