import json
from pathlib import Path
from typing import Any, Dict
from unittest.mock import Mock

import pytest
import requests

from sofafeed.constants import (
    IOS_FEED_URL_ENV_VAR,
    LOG_LEVEL_ENV_VAR,
    MACOS_FEED_URL_ENV_VAR,
    REQUEST_TIMEOUT_ENV_VAR,
)
from sofafeed.feeds import FeedType, decode_feed

TESTDATA_DIR = Path(__file__).parent / "testdata"

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Pass a mocked session as the client."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used to group the test suite.

    Parameters:
        config: pytest.Config
            The pytest configuration object used to register markers.
    """
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "integration: tests spanning several modules")
    config.addinivalue_line("markers", "core_feeds: feed model, decoding and fetching")
    config.addinivalue_line("markers", "infrastructure: logging, config and errors")


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.request = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _isolate_test_environment(monkeypatch):
    """
    Remove sofafeed environment overrides so tests see package defaults.
    """
    for name in (
        MACOS_FEED_URL_ENV_VAR,
        IOS_FEED_URL_ENV_VAR,
        REQUEST_TIMEOUT_ENV_VAR,
        LOG_LEVEL_ENV_VAR,
    ):
        monkeypatch.delenv(name, raising=False)


def load_fixture_bytes(feed_type: FeedType) -> bytes:
    """Read a captured feed from tests/testdata."""
    return (TESTDATA_DIR / f"sofafeed-{feed_type.value}-v1.json").read_bytes()


@pytest.fixture(scope="session")
def macos_feed_bytes() -> bytes:
    return load_fixture_bytes(FeedType.MACOS)


@pytest.fixture(scope="session")
def ios_feed_bytes() -> bytes:
    return load_fixture_bytes(FeedType.IOS)


@pytest.fixture(scope="session")
def macos_feed(macos_feed_bytes):
    return decode_feed(macos_feed_bytes, FeedType.MACOS)


@pytest.fixture(scope="session")
def ios_feed(ios_feed_bytes):
    return decode_feed(ios_feed_bytes, FeedType.IOS)


@pytest.fixture
def feed_payload() -> Dict[str, Any]:
    """A small, fully populated macOS payload as a mutable dict."""
    return json.loads(load_fixture_bytes(FeedType.MACOS))


@pytest.fixture
def mock_response():
    """
    Provide a factory that creates configured mock requests.Response objects.

    The factory accepts the status code, a list of body chunks returned by
    iter_content(), an optional exception raised part-way through the body, and
    an optional exception raised by close().
    """

    def _create_response(
        status_code=200,
        chunks=None,
        body_error=None,
        close_error=None,
    ):
        response = Mock(spec=requests.Response)
        response.status_code = status_code

        def _iter_content(chunk_size=1):
            for chunk in chunks or []:
                yield chunk
            if body_error is not None:
                raise body_error

        response.iter_content.side_effect = _iter_content
        if close_error is not None:
            response.close.side_effect = close_error
        return response

    return _create_response


@pytest.fixture
def mock_session(mock_response):
    """
    Provide a mock requests.Session whose get() returns a 200 response with `{"test": "data"}`.
    """
    session = Mock(spec=requests.Session)
    session.get.return_value = mock_response(chunks=[b'{"test": ', b'"data"}'])
    return session
