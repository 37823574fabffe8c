"""
Tests for the top-level parse and fetch entry points.
"""

from unittest.mock import Mock

import pytest
import requests

import sofafeed
from sofafeed import (
    FetchArgs,
    FetchContext,
    IOSFeed,
    MacOSFeed,
    fetch,
    fetch_and_parse,
    fetch_and_parse_ios_feed,
    fetch_and_parse_macos_feed,
    parse,
    parse_ios_feed,
    parse_macos_feed,
    parse_string,
)
from sofafeed.config import FeedSettings
from sofafeed.constants import IOS_FEED_URL, MACOS_FEED_URL
from sofafeed.exceptions import (
    DecodeError,
    MalformedFeedError,
    RequestBuildError,
    TransportError,
    UnexpectedStatusError,
    UnknownFeedTypeError,
)

pytestmark = [pytest.mark.integration, pytest.mark.core_feeds]


@pytest.fixture
def feed_session(mock_response):
    """Return a factory for a mock session that serves the given body."""

    def _create(body: bytes, status_code=200):
        session = Mock(spec=requests.Session)
        session.get.return_value = mock_response(
            status_code=status_code, chunks=[body[:100], body[100:]]
        )
        return session

    return _create


class TestParse:
    def test_parse_macos(self, macos_feed_bytes, macos_feed):
        assert parse("macos", macos_feed_bytes) == macos_feed

    def test_parse_ios(self, ios_feed_bytes, ios_feed):
        assert parse(sofafeed.FeedType.IOS, ios_feed_bytes) == ios_feed

    def test_parse_string(self, ios_feed_bytes, ios_feed):
        assert parse_string("ios", ios_feed_bytes.decode("utf-8")) == ios_feed

    def test_unknown_type_checked_before_decoding(self, mocker):
        mock_decode = mocker.patch("sofafeed.client.decode_feed")
        with pytest.raises(UnknownFeedTypeError):
            parse("watchos", b"{}")
        mock_decode.assert_not_called()

    def test_convenience_wrappers(self, macos_feed_bytes, ios_feed_bytes):
        assert isinstance(parse_macos_feed(macos_feed_bytes), MacOSFeed)
        assert isinstance(parse_ios_feed(ios_feed_bytes), IOSFeed)

    def test_decode_errors_propagate(self):
        with pytest.raises(MalformedFeedError) as exc_info:
            parse_macos_feed(b"")
        assert exc_info.value.stage == "decode"


class TestFetch:
    def test_default_macos_url(self, mock_session):
        fetch("macos", FetchArgs(client=mock_session))
        assert mock_session.get.call_args[0][0] == MACOS_FEED_URL

    def test_default_ios_url(self, mock_session):
        fetch("ios", FetchArgs(client=mock_session))
        assert mock_session.get.call_args[0][0] == IOS_FEED_URL

    def test_feed_url_override(self, mock_session):
        fetch(
            "ios",
            FetchArgs(client=mock_session, feed_url="https://mirror.example.com/ios.json"),
        )
        assert mock_session.get.call_args[0][0] == "https://mirror.example.com/ios.json"

    def test_empty_feed_url_uses_default(self, mock_session):
        fetch("macos", FetchArgs(client=mock_session, feed_url=""))
        assert mock_session.get.call_args[0][0] == MACOS_FEED_URL

    def test_settings_url_and_timeout(self, mock_session):
        settings = FeedSettings(
            macos_feed_url="https://mirror.example.com/macos.json", request_timeout=7
        )
        fetch("macos", FetchArgs(client=mock_session), settings=settings)

        args, kwargs = mock_session.get.call_args
        assert args[0] == "https://mirror.example.com/macos.json"
        assert kwargs["timeout"] == 7.0

    def test_args_timeout_wins_over_settings(self, mock_session):
        settings = FeedSettings(request_timeout=7)
        fetch("ios", FetchArgs(client=mock_session, timeout=2), settings=settings)
        assert mock_session.get.call_args.kwargs["timeout"] == 2.0

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_non_positive_timeout_is_build_error(self, mock_session, timeout):
        with pytest.raises(RequestBuildError) as exc_info:
            fetch("macos", FetchArgs(client=mock_session, timeout=timeout))
        assert exc_info.value.stage == "fetch"
        mock_session.get.assert_not_called()

    def test_returns_raw_bytes(self, mock_session):
        assert fetch("ios", FetchArgs(client=mock_session)) == b'{"test": "data"}'

    def test_unknown_type_sends_nothing(self, mock_session):
        with pytest.raises(UnknownFeedTypeError) as exc_info:
            fetch("unknown", FetchArgs(client=mock_session))
        assert exc_info.value.stage == "config"
        mock_session.get.assert_not_called()

    def test_context_is_honored(self, mock_session):
        context = FetchContext()
        context.cancel()
        with pytest.raises(TransportError):
            fetch("macos", FetchArgs(client=mock_session), context=context)
        mock_session.get.assert_not_called()


class TestFetchAndParse:
    def test_macos_round_trip(self, feed_session, macos_feed_bytes, macos_feed):
        session = feed_session(macos_feed_bytes)
        feed = fetch_and_parse_macos_feed(FetchArgs(client=session))

        assert isinstance(feed, MacOSFeed)
        assert feed == macos_feed

    def test_ios_round_trip(self, feed_session, ios_feed_bytes, ios_feed):
        session = feed_session(ios_feed_bytes)
        feed = fetch_and_parse_ios_feed(FetchArgs(client=session))

        assert isinstance(feed, IOSFeed)
        assert feed == ios_feed

    def test_string_discriminator(self, feed_session, ios_feed_bytes):
        feed = fetch_and_parse("iOS", FetchArgs(client=feed_session(ios_feed_bytes)))
        assert isinstance(feed, IOSFeed)

    def test_fetch_failure_skips_decoding(self, mocker, feed_session):
        mock_decode = mocker.patch("sofafeed.client.decode_feed")
        session = feed_session(b"Not Found", status_code=404)

        with pytest.raises(UnexpectedStatusError) as exc_info:
            fetch_and_parse("macos", FetchArgs(client=session))

        assert exc_info.value.status_code == 404
        assert exc_info.value.stage == "fetch"
        mock_decode.assert_not_called()

    def test_decode_failure(self, feed_session):
        session = feed_session(b"{not valid json}")
        with pytest.raises(DecodeError) as exc_info:
            fetch_and_parse("ios", FetchArgs(client=session))
        assert exc_info.value.stage == "decode"

    def test_unknown_type(self, mock_session):
        with pytest.raises(UnknownFeedTypeError):
            fetch_and_parse("linux", FetchArgs(client=mock_session))
        mock_session.get.assert_not_called()
