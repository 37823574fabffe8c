"""
Feed Decoder

Turns the raw bytes of a SOFA v1 feed into a MacOSFeed or IOSFeed.

Decoding is field-by-field against the exact key spellings the publisher uses.
Absent keys and JSON null produce the field's default value; unknown keys are
ignored. A value of the wrong JSON type, or a date that is not RFC 3339, fails
the whole decode: there is no partially decoded result.
"""

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from sofafeed.constants import RFC3339_PATTERN
from sofafeed.exceptions import (
    FieldTypeError,
    InvalidTimestampError,
    MalformedFeedError,
)
from sofafeed.log_utils import logger

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
from .variants import FeedTypeLike, resolve_feed_type

T = TypeVar("T")

_RFC3339_RE = re.compile(RFC3339_PATTERN)


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def parse_timestamp(value: str, path: str = "$") -> datetime:
    """
    Parse an RFC 3339 date-time string into a timezone-aware datetime.

    Accepts an optional fractional-seconds part (truncated to microseconds) and
    either ``Z`` or a ``+HH:MM``/``-HH:MM`` offset.

    Parameters:
        value (str): The string to parse, e.g. "2025-01-27T00:00:00Z".
        path (str): JSON path of the value, used in error reporting.

    Returns:
        datetime: The parsed, timezone-aware datetime.

    Raises:
        InvalidTimestampError: If the string does not match RFC 3339 or names
            an impossible date or time.
    """
    match = _RFC3339_RE.match(value)
    if not match:
        raise InvalidTimestampError(path, value)

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))

    if offset == "Z":
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        offset_hours, offset_minutes = int(offset[1:3]), int(offset[4:6])
        if offset_hours > 23 or offset_minutes > 59:
            raise InvalidTimestampError(path, value)
        tz = timezone(sign * timedelta(hours=offset_hours, minutes=offset_minutes))

    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second),
            microsecond,
            tzinfo=tz,
        )
    except ValueError:
        raise InvalidTimestampError(path, value) from None


class _ObjectReader:
    """
    Typed accessors over one JSON object, tracking its JSON path for error reports.

    Every accessor returns the field's default when the key is missing or null.
    """

    def __init__(self, data: Dict[str, Any], path: str) -> None:
        self._data = data
        self.path = path

    @classmethod
    def wrap(cls, value: Any, path: str) -> Optional["_ObjectReader"]:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise FieldTypeError(path, "object", _json_type_name(value))
        return cls(value, path)

    def _child(self, key: str) -> str:
        return f"{self.path}.{key}" if key.isidentifier() else f'{self.path}["{key}"]'

    def _get(self, key: str) -> Any:
        return self._data.get(key)

    # -- scalars ---------------------------------------------------------------

    @staticmethod
    def _as_string(value: Any, path: str) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise FieldTypeError(path, "string", _json_type_name(value))
        return value

    @staticmethod
    def _as_int(value: Any, path: str) -> int:
        if value is None:
            return 0
        # bool is an int subclass; floats would silently truncate
        if isinstance(value, bool) or not isinstance(value, int):
            raise FieldTypeError(path, "integer", _json_type_name(value))
        return value

    @staticmethod
    def _as_bool(value: Any, path: str) -> bool:
        if value is None:
            return False
        if not isinstance(value, bool):
            raise FieldTypeError(path, "boolean", _json_type_name(value))
        return value

    def string(self, key: str) -> str:
        return self._as_string(self._get(key), self._child(key))

    def integer(self, key: str) -> int:
        return self._as_int(self._get(key), self._child(key))

    def timestamp(self, key: str) -> Optional[datetime]:
        value = self._get(key)
        path = self._child(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise FieldTypeError(path, "RFC 3339 string", _json_type_name(value))
        return parse_timestamp(value, path)

    # -- collections -----------------------------------------------------------

    def _array(self, key: str) -> Tuple[List[Any], str]:
        value = self._get(key)
        path = self._child(key)
        if value is None:
            return [], path
        if not isinstance(value, list):
            raise FieldTypeError(path, "array", _json_type_name(value))
        return value, path

    def _mapping(self, key: str) -> Tuple[Optional[Dict[str, Any]], str]:
        value = self._get(key)
        path = self._child(key)
        if value is None:
            return None, path
        if not isinstance(value, dict):
            raise FieldTypeError(path, "object", _json_type_name(value))
        return value, path

    def _typed_array(
        self, key: str, convert: Callable[[Any, str], T]
    ) -> Tuple[T, ...]:
        items, path = self._array(key)
        return tuple(convert(item, f"{path}[{i}]") for i, item in enumerate(items))

    def _typed_mapping(
        self, key: str, convert: Callable[[Any, str], T]
    ) -> Optional[Dict[str, T]]:
        data, path = self._mapping(key)
        if data is None:
            return None
        return {k: convert(v, f'{path}["{k}"]') for k, v in data.items()}

    def string_list(self, key: str) -> Tuple[str, ...]:
        return self._typed_array(key, self._as_string)

    def integer_list(self, key: str) -> Tuple[int, ...]:
        return self._typed_array(key, self._as_int)

    def bool_map(self, key: str) -> Dict[str, bool]:
        return self._typed_mapping(key, self._as_bool) or {}

    def string_map(self, key: str) -> Dict[str, str]:
        return self._typed_mapping(key, self._as_string) or {}

    # -- nested objects --------------------------------------------------------

    def obj(self, key: str, build: Callable[["_ObjectReader"], T]) -> Optional[T]:
        """Decode a nested object with `build`, or return None when it is absent."""
        reader = self.wrap(self._get(key), self._child(key))
        return build(reader) if reader is not None else None

    def obj_or_default(
        self, key: str, build: Callable[["_ObjectReader"], T], default: Callable[[], T]
    ) -> T:
        value = self.obj(key, build)
        return value if value is not None else default()

    def obj_list(
        self, key: str, build: Callable[["_ObjectReader"], T], default: Callable[[], T]
    ) -> Tuple[T, ...]:
        def convert(item: Any, path: str) -> T:
            reader = self.wrap(item, path)
            return build(reader) if reader is not None else default()

        return self._typed_array(key, convert)

    def obj_map(
        self, key: str, build: Callable[["_ObjectReader"], T], default: Callable[[], T]
    ) -> Optional[Dict[str, T]]:
        def convert(item: Any, path: str) -> T:
            reader = self.wrap(item, path)
            return build(reader) if reader is not None else default()

        return self._typed_mapping(key, convert)

    def has(self, key: str) -> bool:
        return self._get(key) is not None


# =============================================================================
# Record builders
# =============================================================================


def _build_uma(r: _ObjectReader) -> UMA:
    return UMA(
        title=r.string("title"),
        version=r.string("version"),
        build=r.string("build"),
        apple_slug=r.string("apple_slug"),
        url=r.string("url"),
    )


def _build_ipsw(r: _ObjectReader) -> IPSW:
    return IPSW(
        url=r.string("macos_ipsw_url"),
        build=r.string("macos_ipsw_build"),
        version=r.string("macos_ipsw_version"),
        apple_slug=r.string("macos_ipsw_apple_slug"),
    )


def _build_installation_apps(r: _ObjectReader) -> InstallationApps:
    return InstallationApps(
        latest_uma=r.obj_or_default("LatestUMA", _build_uma, UMA),
        all_previous_uma=r.obj_list("AllPreviousUMA", _build_uma, UMA),
        latest_mac_ipsw=r.obj_or_default("LatestMacIPSW", _build_ipsw, IPSW),
    )


def _build_xprotect_payloads(r: _ObjectReader) -> XProtectPayloads:
    return XProtectPayloads(
        xprotect=r.string("com.apple.XProtectFramework.XProtect"),
        # Lower-case "p" in Xprotect is how the publisher spells this key
        plugin_service=r.string("com.apple.XprotectFramework.PluginService"),
        release_date=r.timestamp("ReleaseDate"),
    )


def _build_xprotect_plist_config(r: _ObjectReader) -> XProtectPlistConfigData:
    return XProtectPlistConfigData(
        xprotect=r.string("com.apple.XProtect"),
        release_date=r.timestamp("ReleaseDate"),
    )


def _build_model(r: _ObjectReader) -> Model:
    return Model(
        marketing_name=r.string("MarketingName"),
        supported_os=r.string_list("SupportedOS"),
        os_versions=r.integer_list("OSVersions"),
    )


def _build_supported_model(r: _ObjectReader) -> SupportedModel:
    return SupportedModel(
        model=r.string("Model"),
        url=r.string("URL"),
        identifiers=r.string_map("Identifiers"),
    )


def _build_release_details(r: _ObjectReader) -> OSVersionDetails:
    return OSVersionDetails(
        product_version=r.string("ProductVersion"),
        build=r.string("Build"),
        release_date=r.timestamp("ReleaseDate"),
        expiration_date=r.timestamp("ExpirationDate"),
        supported_devices=r.string_list("SupportedDevices"),
        security_info=r.string("SecurityInfo"),
        cves=r.bool_map("CVEs"),
        actively_exploited_cves=r.string_list("ActivelyExploitedCVEs"),
        unique_cves_count=r.integer("UniqueCVEsCount"),
    )


def _build_security_release(r: _ObjectReader) -> SecurityRelease:
    return SecurityRelease(
        update_name=r.string("UpdateName"),
        product_name=r.string("ProductName"),
        product_version=r.string("ProductVersion"),
        release_date=r.timestamp("ReleaseDate"),
        release_type=r.string("ReleaseType"),
        security_info=r.string("SecurityInfo"),
        supported_devices=r.string_list("SupportedDevices"),
        cves=r.bool_map("CVEs"),
        actively_exploited_cves=r.string_list("ActivelyExploitedCVEs"),
        unique_cves_count=r.integer("UniqueCVEsCount"),
        days_since_previous_release=r.integer("DaysSincePreviousRelease"),
    )


def _os_version_builder(feed_type: FeedType) -> Callable[[_ObjectReader], OSVersion]:
    include_models = feed_type is FeedType.MACOS

    def build(r: _ObjectReader) -> OSVersion:
        supported_models = None
        if r.has("SupportedModels"):
            # Validated for both variants, kept only on macOS
            supported_models = r.obj_list(
                "SupportedModels", _build_supported_model, SupportedModel
            )
            if not include_models:
                supported_models = None
        return OSVersion(
            os_version=r.string("OSVersion"),
            latest=r.obj_or_default("Latest", _build_release_details, OSVersionDetails),
            security_releases=r.obj_list(
                "SecurityReleases", _build_security_release, SecurityRelease
            ),
            supported_models=supported_models,
        )

    return build


def _build_macos_extension(r: _ObjectReader) -> MacOSExtension:
    return MacOSExtension(
        xprotect_payloads=r.obj("XProtectPayloads", _build_xprotect_payloads),
        xprotect_plist_config_data=r.obj(
            "XProtectPlistConfigData", _build_xprotect_plist_config
        ),
        models=r.obj_map("Models", _build_model, Model),
        installation_apps=r.obj("InstallationApps", _build_installation_apps),
    )


# =============================================================================
# Public API
# =============================================================================


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def load_json_object(data: Union[bytes, bytearray, str]) -> Dict[str, Any]:
    """
    Parse feed text into a JSON object.

    Parameters:
        data: UTF-8 encoded bytes, or already-decoded text.

    Returns:
        Dict[str, Any]: The top-level JSON object.

    Raises:
        MalformedFeedError: If the input is empty, not UTF-8, not valid JSON,
            or its top-level value is not an object.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFeedError(
                "Feed is not valid UTF-8", details=str(e)
            ) from e
    elif isinstance(data, str):
        text = data
    else:
        raise TypeError(f"Feed data must be bytes or str, not {type(data).__name__}")

    if not text.strip():
        raise MalformedFeedError("Feed is empty")

    try:
        root = json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise MalformedFeedError("Feed is not valid JSON", details=str(e)) from e

    if not isinstance(root, dict):
        raise MalformedFeedError(
            "Feed must be a JSON object",
            path="$",
            details=f"got {_json_type_name(root)}",
        )
    return root


def decode_feed(data: Union[bytes, bytearray, str], feed_type: FeedTypeLike) -> Feed:
    """
    Decode a SOFA v1 feed into the document shape for `feed_type`.

    macOS-only keys (XProtectPayloads, XProtectPlistConfigData, Models,
    InstallationApps and per-version SupportedModels) are validated for both
    variants, so a payload that is invalid there fails either way, but only a
    MacOSFeed exposes them.

    Parameters:
        data: The feed as UTF-8 bytes or text.
        feed_type: Which variant to decode into; a FeedType or its
            case-insensitive string value.

    Returns:
        Feed: A MacOSFeed or IOSFeed.

    Raises:
        UnknownFeedTypeError: If `feed_type` names neither variant.
        MalformedFeedError: If the input is not a JSON object.
        FieldTypeError: If a value has the wrong JSON type for its field.
        InvalidTimestampError: If a date-time value is not RFC 3339.
    """
    feed_type = resolve_feed_type(feed_type)
    root = _ObjectReader(load_json_object(data), "$")

    update_hash = root.string("UpdateHash")
    os_versions = root.obj_list("OSVersions", _os_version_builder(feed_type), OSVersion)

    macos = _build_macos_extension(root)

    feed: Feed
    if feed_type is FeedType.MACOS:
        feed = MacOSFeed(update_hash=update_hash, os_versions=os_versions, macos=macos)
    else:
        feed = IOSFeed(update_hash=update_hash, os_versions=os_versions)

    logger.debug(
        "Decoded %s feed %s with %d OS versions",
        feed_type,
        update_hash or "<no hash>",
        len(os_versions),
    )
    return feed


def decode_feed_string(text: str, feed_type: FeedTypeLike) -> Feed:
    """Decode a feed that is already text; same semantics as decode_feed."""
    return decode_feed(text, feed_type)
