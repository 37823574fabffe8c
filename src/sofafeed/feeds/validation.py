"""
Consistency checks for decoded feeds.

The publisher encodes the "actively exploited" status of each CVE twice: as
the boolean values of a release's CVEs map and as its ActivelyExploitedCVEs
list. Decoding keeps both as published; these helpers report where they
disagree. The UniqueCVEsCount field is advisory, so a mismatch against the
CVEs map is reported separately and is not treated as an inconsistency.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import Feed, OSVersion, SecurityRelease


@dataclass(frozen=True)
class CVEInconsistency:
    """One CVE whose exploited flag and exploited-list membership disagree."""

    os_version: str
    product_version: str
    """Product version of the release, or of the latest release"""

    cve_id: str
    flagged_exploited: bool
    """Value in the CVEs map (False when the CVE is missing from the map)"""

    listed_exploited: bool
    """Whether the CVE appears in ActivelyExploitedCVEs"""

    in_latest: bool


@dataclass(frozen=True)
class CVECountMismatch:
    os_version: str
    product_version: str
    unique_cves_count: int
    cve_map_size: int
    in_latest: bool


def _iter_records(os_version: OSVersion):
    yield True, os_version.latest
    for release in os_version.security_releases:
        yield False, release


def find_cve_inconsistencies(feed: Feed) -> List[CVEInconsistency]:
    """
    List every CVE whose map flag and exploited-list membership disagree.

    A CVE is consistent when it is in ActivelyExploitedCVEs exactly when its
    CVEs map entry is true. Checks the latest release and every security
    release of every OS version.

    Returns:
        List[CVEInconsistency]: Empty when the feed is fully consistent.
    """
    problems: List[CVEInconsistency] = []
    for os_version in feed.os_versions:
        for in_latest, record in _iter_records(os_version):
            listed = set(record.actively_exploited_cves)
            flagged = {cve for cve, exploited in record.cves.items() if exploited}
            for cve_id in sorted(listed ^ flagged):
                problems.append(
                    CVEInconsistency(
                        os_version=os_version.os_version,
                        product_version=record.product_version,
                        cve_id=cve_id,
                        flagged_exploited=cve_id in flagged,
                        listed_exploited=cve_id in listed,
                        in_latest=in_latest,
                    )
                )
    return problems


def find_cve_count_mismatches(feed: Feed) -> List[CVECountMismatch]:
    """List releases whose UniqueCVEsCount differs from the size of their CVEs map."""
    mismatches: List[CVECountMismatch] = []
    for os_version in feed.os_versions:
        for in_latest, record in _iter_records(os_version):
            if record.unique_cves_count != len(record.cves):
                mismatches.append(
                    CVECountMismatch(
                        os_version=os_version.os_version,
                        product_version=record.product_version,
                        unique_cves_count=record.unique_cves_count,
                        cve_map_size=len(record.cves),
                        in_latest=in_latest,
                    )
                )
    return mismatches


def exploited_in(
    feed: Feed, cve_id: str
) -> List[Tuple[str, str, Optional[SecurityRelease]]]:
    """
    Find every release that addressed `cve_id` while it was actively exploited.

    Returns:
        List of (os_version label, product version, security release) tuples; the
        security release is None when the match is the OS version's latest release.
    """
    hits: List[Tuple[str, str, Optional[SecurityRelease]]] = []
    for os_version in feed.os_versions:
        for in_latest, record in _iter_records(os_version):
            if record.is_actively_exploited(cve_id):
                release = None if in_latest else record
                hits.append((os_version.os_version, record.product_version, release))
    return hits
