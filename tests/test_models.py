"""
Tests for the feed document model.
"""

import dataclasses

import pytest

from sofafeed.feeds import (
    UMA,
    Feed,
    FeedType,
    IOSFeed,
    MacOSExtension,
    MacOSFeed,
    Model,
    OSVersion,
    OSVersionDetails,
    SecurityRelease,
    SupportedModel,
)

pytestmark = [pytest.mark.unit, pytest.mark.core_feeds]


class TestFeedType:
    def test_values(self):
        assert FeedType.MACOS.value == "macos"
        assert FeedType.IOS.value == "ios"

    def test_str_is_value(self):
        assert str(FeedType.IOS) == "ios"
        assert f"{FeedType.MACOS}" == "macos"

    def test_compares_equal_to_string(self):
        assert FeedType.MACOS == "macos"


class TestImmutability:
    def test_records_are_frozen(self, macos_feed):
        with pytest.raises(dataclasses.FrozenInstanceError):
            macos_feed.update_hash = "changed"
        with pytest.raises(dataclasses.FrozenInstanceError):
            macos_feed.os_versions[0].latest.build = "changed"

    def test_sequences_are_tuples(self, macos_feed):
        os_version = macos_feed.os_versions[0]
        assert isinstance(macos_feed.os_versions, tuple)
        assert isinstance(os_version.security_releases, tuple)
        assert isinstance(os_version.latest.supported_devices, tuple)
        assert isinstance(os_version.latest.actively_exploited_cves, tuple)

    def test_cve_map_is_read_only(self, macos_feed):
        cves = macos_feed.os_versions[0].latest.cves
        with pytest.raises(TypeError):
            cves["CVE-0000-0000"] = True

    def test_models_map_is_read_only(self, macos_feed):
        with pytest.raises(TypeError):
            macos_feed.models["NewMac1,1"] = Model()

    def test_identifiers_map_is_read_only(self):
        source = {"Model Identifier": "Mac15,13"}
        model = SupportedModel(model="MacBook Air", identifiers=source)
        source["Model Identifier"] = "changed"

        assert model.identifiers["Model Identifier"] == "Mac15,13"
        with pytest.raises(TypeError):
            model.identifiers["Other"] = "x"

    def test_caller_dict_is_copied(self):
        cves = {"CVE-1": True}
        record = OSVersionDetails(cves=cves)
        cves["CVE-2"] = False
        assert "CVE-2" not in record.cves

    @pytest.mark.parametrize(
        "record",
        [
            OSVersionDetails(),
            SecurityRelease(),
            SupportedModel(),
            OSVersion(),
            MacOSExtension(),
            MacOSFeed(),
            IOSFeed(),
        ],
        ids=lambda record: type(record).__name__,
    )
    def test_records_holding_mappings_are_unhashable(self, record):
        assert type(record).__hash__ is None
        with pytest.raises(TypeError):
            hash(record)

    def test_flat_records_are_hashable(self):
        assert hash(UMA(version="15.3")) == hash(UMA(version="15.3"))
        assert len({Model(marketing_name="a"), Model(marketing_name="a")}) == 1

    def test_unhashable_records_still_compare_equal(self):
        assert OSVersionDetails(cves={"CVE-1": True}) == OSVersionDetails(
            cves={"CVE-1": True}
        )


class TestFeedShapes:
    def test_macos_feed_always_has_extension(self):
        assert MacOSFeed().macos == MacOSExtension()
        assert MacOSFeed(macos=None).macos == MacOSExtension()

    def test_base_feed_cannot_be_instantiated(self):
        with pytest.raises(TypeError, match="MacOSFeed or IOSFeed"):
            Feed()

    def test_ios_feed_rejects_macos_sections(self):
        with pytest.raises(ValueError, match="macOS-only"):
            IOSFeed(macos=MacOSExtension())

    def test_feed_type_is_class_level(self):
        assert MacOSFeed.feed_type is FeedType.MACOS
        assert IOSFeed.feed_type is FeedType.IOS
        assert "feed_type" not in {f.name for f in dataclasses.fields(Feed)}

    def test_ios_properties_return_none(self):
        feed = IOSFeed(update_hash="abc")
        assert feed.xprotect_payloads is None
        assert feed.xprotect_plist_config_data is None
        assert feed.models is None
        assert feed.installation_apps is None

    def test_os_version_lookup(self):
        feed = IOSFeed(
            os_versions=(OSVersion(os_version="18"), OSVersion(os_version="17"))
        )
        assert feed.os_version("17") is feed.os_versions[1]
        assert feed.os_version("15") is None


class TestReleaseRecords:
    def _os_version(self):
        return OSVersion(
            os_version="18",
            latest=OSVersionDetails(
                product_version="18.3",
                supported_devices=("iPhone17,1",),
                cves={"CVE-A": True, "CVE-B": False},
                actively_exploited_cves=("CVE-A",),
            ),
            security_releases=(
                SecurityRelease(product_version="18.3"),
                SecurityRelease(product_version="18.2"),
            ),
        )

    def test_supports_device(self):
        latest = self._os_version().latest
        assert latest.supports_device("iPhone17,1")
        assert not latest.supports_device("iPhone1,1")

    def test_is_actively_exploited(self):
        latest = self._os_version().latest
        assert latest.is_actively_exploited("CVE-A") is True
        assert latest.is_actively_exploited("CVE-B") is False
        assert latest.is_actively_exploited("CVE-C") is False

    def test_security_release_lookup(self):
        os_version = self._os_version()
        assert os_version.security_release("18.2") is os_version.security_releases[1]
        assert os_version.security_release("1.0") is None

    def test_release_records_latest_first(self):
        os_version = self._os_version()
        records = os_version.release_records()
        assert records[0] is os_version.latest
        assert records[1:] == os_version.security_releases

    def test_defaults(self):
        release = SecurityRelease()
        assert release.release_date is None
        assert release.cves == {}
        assert release.unique_cves_count == 0
        assert release.days_since_previous_release == 0
        assert OSVersion().supported_models is None
