"""
Variant Selector

Maps a feed type discriminator to the endpoint to fetch and the document
shape to decode into.
"""

from dataclasses import dataclass
from typing import Optional, Type, Union

from sofafeed.config import FeedSettings
from sofafeed.exceptions import UnknownFeedTypeError
from sofafeed.log_utils import logger

from .models import Feed, FeedType, IOSFeed, MacOSFeed

FeedTypeLike = Union[FeedType, str]


@dataclass(frozen=True)
class FeedVariant:
    """The resolved endpoint and document shape for one feed type."""

    feed_type: FeedType
    url: str
    feed_class: Type[Feed]


def resolve_feed_type(feed_type: FeedTypeLike) -> FeedType:
    """
    Normalize a discriminator to a FeedType member.

    Strings are matched case-insensitively after trimming whitespace, so "macOS"
    and " ios " are accepted.

    Raises:
        UnknownFeedTypeError: If the value names neither variant.
    """
    if isinstance(feed_type, FeedType):
        return feed_type
    if isinstance(feed_type, str):
        try:
            return FeedType(feed_type.strip().lower())
        except ValueError:
            pass
    valid = ", ".join(repr(ft.value) for ft in FeedType)
    raise UnknownFeedTypeError(feed_type, details=f"expected one of {valid}")


def select_variant(
    feed_type: FeedTypeLike, settings: Optional[FeedSettings] = None
) -> FeedVariant:
    """
    Choose the default endpoint and document class for a feed type.

    Parameters:
        feed_type: FeedType.MACOS / FeedType.IOS, or the strings "macos" / "ios".
        settings (Optional[FeedSettings]): Endpoint overrides; package defaults when omitted.

    Returns:
        FeedVariant: The endpoint URL and Feed subclass for the variant.

    Raises:
        UnknownFeedTypeError: If `feed_type` is not recognized. No network
            activity happens before this check.
    """
    resolved = resolve_feed_type(feed_type)
    settings = settings or FeedSettings()

    if resolved is FeedType.MACOS:
        variant = FeedVariant(resolved, settings.macos_feed_url, MacOSFeed)
    else:
        variant = FeedVariant(resolved, settings.ios_feed_url, IOSFeed)

    logger.debug("Selected %s feed variant at %s", resolved, variant.url)
    return variant
