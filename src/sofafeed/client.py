"""
Feed retrieval entry points.

This module ties the pieces together: select the variant, fetch its bytes,
decode them. Each step runs only when the previous one succeeded, and the
exception that stops the pipeline carries a ``stage`` attribute
("config", "fetch" or "decode") naming where it came from.

Usage:
    feed = fetch_and_parse_macos_feed()
    sequoia = feed.os_version("Sequoia 15")

    feed = fetch_and_parse(
        "ios",
        FetchArgs(client=session, timeout=10),
        context=FetchContext(timeout=60),
    )
"""

from dataclasses import dataclass
from typing import Optional, Union, cast

import requests

from sofafeed.config import FeedSettings
from sofafeed.feeds.decoder import decode_feed
from sofafeed.feeds.fetcher import FetchContext, fetch_feed_bytes
from sofafeed.feeds.models import Feed, FeedType, IOSFeed, MacOSFeed
from sofafeed.feeds.variants import FeedTypeLike, select_variant
from sofafeed.log_utils import logger


@dataclass(frozen=True)
class FetchArgs:
    """Per-call overrides for fetching a feed."""

    client: Optional[requests.Session] = None
    """Session to send the request with; a temporary one is used when None"""

    feed_url: Optional[str] = None
    """Endpoint to fetch; the variant's default when None or empty"""

    timeout: Optional[float] = None
    """Request timeout in seconds; the settings' timeout when None"""


def parse(feed_type: FeedTypeLike, data: Union[bytes, bytearray, str]) -> Feed:
    """
    Decode feed bytes (or text) into the document shape for `feed_type`.

    Raises:
        UnknownFeedTypeError: If `feed_type` is not recognized.
        DecodeError: If the data is not a valid feed.
    """
    variant = select_variant(feed_type)
    return decode_feed(data, variant.feed_type)


def parse_string(feed_type: FeedTypeLike, text: str) -> Feed:
    """Decode feed text; identical to parse() with a str argument."""
    return parse(feed_type, text)


def fetch(
    feed_type: FeedTypeLike,
    args: Optional[FetchArgs] = None,
    context: Optional[FetchContext] = None,
    settings: Optional[FeedSettings] = None,
) -> bytes:
    """
    Fetch the raw bytes of a feed.

    Parameters:
        feed_type: "macos" / "ios" or a FeedType member.
        args (Optional[FetchArgs]): Client, URL and timeout overrides.
        context (Optional[FetchContext]): Deadline and cancellation.
        settings (Optional[FeedSettings]): Default endpoints and timeout.

    Returns:
        bytes: The body of a 200 OK response.

    Raises:
        UnknownFeedTypeError: If `feed_type` is not recognized; nothing is sent.
        FetchError: If the request could not be built or sent, the status was
            not 200, or the body could not be read.
    """
    settings = settings or FeedSettings()
    variant = select_variant(feed_type, settings)
    args = args or FetchArgs()

    url = args.feed_url or variant.url
    timeout = args.timeout if args.timeout is not None else settings.request_timeout
    return fetch_feed_bytes(url, client=args.client, timeout=timeout, context=context)


def fetch_and_parse(
    feed_type: FeedTypeLike,
    args: Optional[FetchArgs] = None,
    context: Optional[FetchContext] = None,
    settings: Optional[FeedSettings] = None,
) -> Feed:
    """
    Fetch a feed and decode it in one call.

    Decoding is not attempted if the fetch fails.

    Returns:
        Feed: A MacOSFeed or IOSFeed depending on `feed_type`.

    Raises:
        UnknownFeedTypeError, FetchError, DecodeError: see fetch() and parse().
    """
    variant = select_variant(feed_type, settings)
    data = fetch(variant.feed_type, args, context=context, settings=settings)
    feed = decode_feed(data, variant.feed_type)
    logger.debug(
        "Fetched and decoded %s feed with %d OS versions",
        variant.feed_type,
        len(feed.os_versions),
    )
    return feed


# =============================================================================
# Variant-bound convenience wrappers
# =============================================================================


def parse_macos_feed(data: Union[bytes, bytearray, str]) -> MacOSFeed:
    """Decode macOS feed bytes or text."""
    return cast(MacOSFeed, parse(FeedType.MACOS, data))


def parse_ios_feed(data: Union[bytes, bytearray, str]) -> IOSFeed:
    """Decode iOS feed bytes or text."""
    return cast(IOSFeed, parse(FeedType.IOS, data))


def fetch_and_parse_macos_feed(
    args: Optional[FetchArgs] = None,
    context: Optional[FetchContext] = None,
    settings: Optional[FeedSettings] = None,
) -> MacOSFeed:
    """Fetch and decode the macOS feed from its default (or overridden) endpoint."""
    return cast(
        MacOSFeed,
        fetch_and_parse(FeedType.MACOS, args, context=context, settings=settings),
    )


def fetch_and_parse_ios_feed(
    args: Optional[FetchArgs] = None,
    context: Optional[FetchContext] = None,
    settings: Optional[FeedSettings] = None,
) -> IOSFeed:
    """Fetch and decode the iOS feed from its default (or overridden) endpoint."""
    return cast(
        IOSFeed,
        fetch_and_parse(FeedType.IOS, args, context=context, settings=settings),
    )
