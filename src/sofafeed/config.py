"""
Configuration for sofafeed.

Settings are layered: package defaults from ``sofafeed.constants``, then an
optional YAML file, then ``SOFAFEED_*`` environment variables. The result is an
immutable FeedSettings value that callers pass explicitly to the variant
selector; nothing here is stored in module-level state.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import yaml

from sofafeed.constants import (
    CONFIG_KEY_IOS_FEED_URL,
    CONFIG_KEY_MACOS_FEED_URL,
    CONFIG_KEY_REQUEST_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    IOS_FEED_URL,
    IOS_FEED_URL_ENV_VAR,
    MACOS_FEED_URL,
    MACOS_FEED_URL_ENV_VAR,
    REQUEST_TIMEOUT_ENV_VAR,
)
from sofafeed.exceptions import ConfigFileError
from sofafeed.log_utils import logger


@dataclass(frozen=True)
class FeedSettings:
    """Default endpoints and request timeout used when a caller passes no overrides."""

    macos_feed_url: str = MACOS_FEED_URL
    """Endpoint for the macOS (desktop) feed"""

    ios_feed_url: str = IOS_FEED_URL
    """Endpoint for the iOS (mobile) feed"""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    """Seconds to wait for the server before giving up"""


def _validate_url(value: Any, source: str, path: Optional[str]) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigFileError(
            f"{source} must be a non-empty URL string", path=path, details=repr(value)
        )
    url = value.strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        parsed = None
    if parsed is None or parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigFileError(
            f"{source} must be an http(s) URL", path=path, details=url
        )
    return url


def _validate_timeout(value: Any, source: str, path: Optional[str]) -> float:
    # bool is an int subclass but never a sensible timeout
    if isinstance(value, bool):
        raise ConfigFileError(
            f"{source} must be a number of seconds", path=path, details=repr(value)
        )
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigFileError(
            f"{source} must be a number of seconds", path=path, details=repr(value)
        ) from None
    if timeout <= 0:
        raise ConfigFileError(
            f"{source} must be greater than zero", path=path, details=repr(value)
        )
    return timeout


def _apply_overrides(
    settings: FeedSettings,
    overrides: Mapping[str, Any],
    source: str,
    path: Optional[str] = None,
) -> FeedSettings:
    """
    Return a copy of `settings` with any recognized keys from `overrides` applied.

    Parameters:
        settings (FeedSettings): The settings to start from.
        overrides (Mapping[str, Any]): Values keyed by CONFIG_KEY_* names.
        source (str): Human-readable origin of the overrides, used in error messages.
        path (Optional[str]): Config file path, when the overrides came from a file.

    Raises:
        ConfigFileError: If a recognized key holds an invalid value.
    """
    changes: Dict[str, Any] = {}
    if overrides.get(CONFIG_KEY_MACOS_FEED_URL) is not None:
        changes["macos_feed_url"] = _validate_url(
            overrides[CONFIG_KEY_MACOS_FEED_URL],
            f"{source} {CONFIG_KEY_MACOS_FEED_URL}",
            path,
        )
    if overrides.get(CONFIG_KEY_IOS_FEED_URL) is not None:
        changes["ios_feed_url"] = _validate_url(
            overrides[CONFIG_KEY_IOS_FEED_URL],
            f"{source} {CONFIG_KEY_IOS_FEED_URL}",
            path,
        )
    if overrides.get(CONFIG_KEY_REQUEST_TIMEOUT) is not None:
        changes["request_timeout"] = _validate_timeout(
            overrides[CONFIG_KEY_REQUEST_TIMEOUT],
            f"{source} {CONFIG_KEY_REQUEST_TIMEOUT}",
            path,
        )
    return replace(settings, **changes) if changes else settings


def load_config_file(config_path: str) -> Dict[str, Any]:
    """
    Read a sofafeed YAML configuration file.

    An empty file is treated as an empty configuration.

    Parameters:
        config_path (str): Path to the YAML file.

    Returns:
        Dict[str, Any]: The parsed top-level mapping.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML, or its
            top level is not a mapping.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError(
            "Unable to read configuration file", path=config_path, details=str(e)
        ) from e
    except yaml.YAMLError as e:
        raise ConfigFileError(
            "Invalid YAML in configuration file", path=config_path, details=str(e)
        ) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigFileError(
            "Configuration file must contain a mapping",
            path=config_path,
            details=type(config).__name__,
        )
    return config


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> FeedSettings:
    """
    Build FeedSettings from defaults, an optional YAML file and the environment.

    Later layers win: environment variables override the file, which overrides
    the package defaults.

    Parameters:
        config_path (Optional[str]): YAML file with MACOS_FEED_URL, IOS_FEED_URL and/or
            REQUEST_TIMEOUT keys. Unknown keys are ignored.
        environ (Optional[Mapping[str, str]]): Environment to read overrides from;
            defaults to os.environ.

    Returns:
        FeedSettings: The resolved settings.

    Raises:
        ConfigFileError: If the file or any override value is invalid.
    """
    settings = FeedSettings()

    if config_path:
        logger.debug(f"Loading sofafeed configuration from {config_path}")
        settings = _apply_overrides(
            settings, load_config_file(config_path), "config file", config_path
        )

    env = os.environ if environ is None else environ
    env_overrides = {
        CONFIG_KEY_MACOS_FEED_URL: env.get(MACOS_FEED_URL_ENV_VAR) or None,
        CONFIG_KEY_IOS_FEED_URL: env.get(IOS_FEED_URL_ENV_VAR) or None,
        CONFIG_KEY_REQUEST_TIMEOUT: env.get(REQUEST_TIMEOUT_ENV_VAR) or None,
    }
    return _apply_overrides(settings, env_overrides, "environment")
