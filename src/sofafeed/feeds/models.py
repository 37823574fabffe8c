"""
Document Model for SOFA v1 Feeds

This module defines the typed, immutable records that a decoded feed is made
of. The macOS and iOS feeds share almost all of their shape; the macOS-only
top-level sections live in a separate MacOSExtension record that is present on
MacOSFeed and always absent on IOSFeed.

Sequences are tuples and mappings are read-only views, so a decoded document
cannot be modified by the code that receives it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional, Tuple

from sofafeed.constants import FEED_TYPE_IOS, FEED_TYPE_MACOS


def _frozen_map(value: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(value or {}))


class FeedType(str, Enum):
    """The two platform variants of the SOFA feed."""

    MACOS = FEED_TYPE_MACOS
    IOS = FEED_TYPE_IOS

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class UMA:
    """Universal macOS installer (InstallAssistant.pkg) metadata."""

    title: str = ""
    """Installer name, e.g. 'macOS Sequoia'"""

    version: str = ""
    """OS version the installer delivers"""

    build: str = ""
    """Build number"""

    apple_slug: str = ""
    """Apple's product identifier for this installer"""

    url: str = ""
    """Download location"""


@dataclass(frozen=True)
class IPSW:
    """Restore image (IPSW) metadata for Apple silicon Macs."""

    url: str = ""
    build: str = ""
    version: str = ""
    apple_slug: str = ""


@dataclass(frozen=True)
class InstallationApps:
    """Installer artifacts published in the macOS feed."""

    latest_uma: UMA = field(default_factory=UMA)
    """The newest Universal macOS installer"""

    all_previous_uma: Tuple[UMA, ...] = ()
    """Older installers; newest first as published, not enforced"""

    latest_mac_ipsw: IPSW = field(default_factory=IPSW)
    """The newest restore image"""


@dataclass(frozen=True)
class XProtectPayloads:
    """XProtect framework versions."""

    xprotect: str = ""
    plugin_service: str = ""
    release_date: Optional[datetime] = None


@dataclass(frozen=True)
class XProtectPlistConfigData:
    """XProtect plist configuration version."""

    xprotect: str = ""
    release_date: Optional[datetime] = None


@dataclass(frozen=True)
class Model:
    """
    A Mac hardware model and the OS releases it supports.

    `supported_os` and `os_versions` describe the same fact twice: the first as
    marketing labels ("Sequoia 15"), the second as major version numbers (15).
    """

    marketing_name: str = ""
    supported_os: Tuple[str, ...] = ()
    os_versions: Tuple[int, ...] = ()


@dataclass(frozen=True)
class SupportedModel:
    """A Mac model supported by an OS version, with its identifier aliases."""

    # Read-only mappings are not hashable, so neither are records holding them
    __hash__ = None  # type: ignore[assignment]

    model: str = ""
    url: str = ""
    identifiers: Mapping[str, str] = field(default_factory=_frozen_map)

    def __post_init__(self) -> None:
        object.__setattr__(self, "identifiers", _frozen_map(self.identifiers))


@dataclass(frozen=True)
class _ReleaseRecord:
    """
    Fields shared by the latest release of an OS version and its security releases.

    `cves` maps every addressed CVE id to whether it was actively exploited, and
    `actively_exploited_cves` lists the ids whose flag is true. Both come from the
    publisher and are kept as-is; see sofafeed.feeds.validation for checks that
    they agree. `unique_cves_count` is advisory and is not reconciled with `cves`.
    """

    __hash__ = None  # type: ignore[assignment]

    product_version: str = ""
    release_date: Optional[datetime] = None
    supported_devices: Tuple[str, ...] = ()
    security_info: str = ""
    cves: Mapping[str, bool] = field(default_factory=_frozen_map)
    actively_exploited_cves: Tuple[str, ...] = ()
    unique_cves_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "cves", _frozen_map(self.cves))

    def supports_device(self, device_id: str) -> bool:
        """Return True if `device_id` is listed in this release's supported devices."""
        return device_id in self.supported_devices

    def is_actively_exploited(self, cve_id: str) -> bool:
        """Return the exploitation flag for `cve_id`, False when the CVE is not addressed."""
        return bool(self.cves.get(cve_id, False))


@dataclass(frozen=True)
class OSVersionDetails(_ReleaseRecord):
    """The latest release of an OS version."""

    __hash__ = None  # type: ignore[assignment]

    build: str = ""
    expiration_date: Optional[datetime] = None


@dataclass(frozen=True)
class SecurityRelease(_ReleaseRecord):
    """A historical release of an OS version and the CVEs it addressed."""

    __hash__ = None  # type: ignore[assignment]

    update_name: str = ""
    product_name: str = ""
    release_type: str = ""
    days_since_previous_release: int = 0


@dataclass(frozen=True)
class OSVersion:
    """An OS release family such as "18" or "Sequoia 15"."""

    __hash__ = None  # type: ignore[assignment]

    os_version: str = ""
    """Family label as published"""

    latest: OSVersionDetails = field(default_factory=OSVersionDetails)
    """Most recent release in the family"""

    security_releases: Tuple[SecurityRelease, ...] = ()
    """Historical releases; newest first as published, not enforced"""

    supported_models: Optional[Tuple[SupportedModel, ...]] = None
    """macOS only; None when absent and always None for iOS"""

    def security_release(self, product_version: str) -> Optional[SecurityRelease]:
        """
        Find the security release with the given product version.

        Returns:
            Optional[SecurityRelease]: The first matching release, or None.
        """
        for release in self.security_releases:
            if release.product_version == product_version:
                return release
        return None

    def release_records(self) -> Tuple[_ReleaseRecord, ...]:
        """Return the latest release followed by every security release."""
        return (self.latest, *self.security_releases)


@dataclass(frozen=True)
class MacOSExtension:
    """
    Top-level sections that only the macOS feed carries.

    Each section is None when the key was absent (or null) in the payload, so
    callers can tell "not published" apart from "published but empty".
    """

    __hash__ = None  # type: ignore[assignment]

    xprotect_payloads: Optional[XProtectPayloads] = None
    xprotect_plist_config_data: Optional[XProtectPlistConfigData] = None
    models: Optional[Mapping[str, Model]] = None
    installation_apps: Optional[InstallationApps] = None

    def __post_init__(self) -> None:
        if self.models is not None:
            object.__setattr__(self, "models", _frozen_map(self.models))


@dataclass(frozen=True)
class Feed:
    """
    A decoded SOFA feed.

    Use MacOSFeed or IOSFeed to construct one; the base class only carries the
    fields both variants share plus read-only accessors for the macOS sections,
    which return None on an iOS feed rather than raising. It cannot be
    instantiated directly.
    """

    feed_type: ClassVar[FeedType]

    __hash__ = None  # type: ignore[assignment]

    update_hash: str = ""
    """Fingerprint of this feed snapshot"""

    os_versions: Tuple[OSVersion, ...] = ()
    """OS release families, in published order"""

    macos: Optional[MacOSExtension] = None
    """macOS-only sections; None on iOS feeds"""

    def __post_init__(self) -> None:
        if type(self) is Feed:
            raise TypeError("Feed is a base class; construct MacOSFeed or IOSFeed")

    @property
    def xprotect_payloads(self) -> Optional[XProtectPayloads]:
        return self.macos.xprotect_payloads if self.macos else None

    @property
    def xprotect_plist_config_data(self) -> Optional[XProtectPlistConfigData]:
        return self.macos.xprotect_plist_config_data if self.macos else None

    @property
    def models(self) -> Optional[Mapping[str, Model]]:
        return self.macos.models if self.macos else None

    @property
    def installation_apps(self) -> Optional[InstallationApps]:
        return self.macos.installation_apps if self.macos else None

    def os_version(self, label: str) -> Optional[OSVersion]:
        """
        Find an OS release family by its published label.

        Parameters:
            label (str): The label exactly as published, e.g. "18" or "Sequoia 15".

        Returns:
            Optional[OSVersion]: The first matching family, or None.
        """
        for os_version in self.os_versions:
            if os_version.os_version == label:
                return os_version
        return None


@dataclass(frozen=True)
class MacOSFeed(Feed):
    """A decoded macOS feed; `macos` is always populated."""

    feed_type: ClassVar[FeedType] = FeedType.MACOS

    __hash__ = None  # type: ignore[assignment]

    macos: Optional[MacOSExtension] = field(default_factory=MacOSExtension)

    def __post_init__(self) -> None:
        if self.macos is None:
            object.__setattr__(self, "macos", MacOSExtension())


@dataclass(frozen=True)
class IOSFeed(Feed):
    """A decoded iOS feed; it never carries macOS-only sections."""

    feed_type: ClassVar[FeedType] = FeedType.IOS

    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.macos is not None:
            raise ValueError("IOSFeed cannot carry macOS-only sections")
