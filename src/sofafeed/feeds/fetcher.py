"""
Feed Fetcher

Retrieves the raw bytes of a feed with a single HTTP GET. Every failure is
raised as a FetchError subclass naming what went wrong; nothing is retried.
"""

import importlib.metadata
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

import requests
import urllib3

from sofafeed.constants import (
    ACCEPT_HEADER_VALUE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    HTTP_STATUS_OK,
    USER_AGENT_PRODUCT,
)
from sofafeed.exceptions import (
    RequestBuildError,
    ResponseBodyError,
    TransportError,
    UnexpectedStatusError,
)
from sofafeed.log_utils import logger

_USER_AGENT_CACHE: Optional[str] = None

# Raised by requests while preparing a request, before anything is sent
_REQUEST_BUILD_EXCEPTIONS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
    requests.exceptions.URLRequired,
)


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `sofafeed/{version}`, where `{version}` is the installed package
        version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(USER_AGENT_PRODUCT)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{USER_AGENT_PRODUCT}/{app_version}"

    return _USER_AGENT_CACHE


class FetchContext:
    """
    Deadline and cancellation for one or more fetches.

    A context may be shared between threads: any thread can call cancel(), and
    fetches using the context stop with a TransportError. Once a response has
    arrived the fetch registers a callback that closes it, so cancelling also
    interrupts a body read that is in progress.

    Example:
        ctx = FetchContext(timeout=10)
        data = fetch_feed_bytes(url, context=ctx)
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        """
        Parameters:
            timeout (Optional[float]): Seconds from now until the deadline; None for no deadline.
        """
        self.deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def cancel(self) -> None:
        """Cancel the context and run any registered cancel callbacks."""
        with self._lock:
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            _run_quietly(callback, "cancel callback")

    def on_cancel(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """
        Register `callback` to run when the context is cancelled.

        If the context is already cancelled the callback runs immediately.

        Returns:
            Callable[[], None]: A function that unregisters the callback.
        """
        with self._lock:
            if not self._cancelled.is_set():
                self._callbacks.append(callback)
                run_now = False
            else:
                run_now = True
        if run_now:
            _run_quietly(callback, "cancel callback")

        def unregister() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unregister

    def check(self, url: Optional[str] = None) -> None:
        """
        Raise TransportError if the context is cancelled or past its deadline.
        """
        if self.cancelled:
            raise TransportError("Request cancelled", url=url)
        if self.expired():
            raise TransportError("Request deadline exceeded", url=url)


def _run_quietly(func: Callable[[], Any], what: str) -> None:
    try:
        func()
    except Exception as e:  # noqa: BLE001 - cleanup must never mask the outcome
        logger.error(f"Failed to run {what}: {e}")


def _close_quietly(resource: Any, what: str, url: str) -> None:
    """
    Close an HTTP response or session, logging instead of raising on failure.
    """
    try:
        resource.close()
    except Exception as e:  # noqa: BLE001 - cleanup must never mask the outcome
        logger.error(f"Failed to close {what} for {url}: {e}")


def _validate_request(url: Any, context: Any, headers: dict) -> None:
    if context is not None and not isinstance(context, FetchContext):
        raise RequestBuildError(
            "Invalid fetch context",
            url=url if isinstance(url, str) else None,
            details=f"expected FetchContext, got {type(context).__name__}",
        )
    if not isinstance(url, str) or not url.strip():
        raise RequestBuildError("Feed URL is empty or not a string", details=repr(url))

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise RequestBuildError("Invalid feed URL", url=url, details=str(e)) from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise RequestBuildError("Feed URL must be an absolute http(s) URL", url=url)

    try:
        requests.Request("GET", url, headers=headers).prepare()
    except _REQUEST_BUILD_EXCEPTIONS as e:
        raise RequestBuildError(
            "Failed to create fetch request", url=url, details=str(e)
        ) from e


def _effective_timeout(
    timeout: Optional[float], context: Optional[FetchContext], url: str
) -> float:
    """
    Resolve the timeout passed to requests, capped by the context deadline.

    Raises:
        RequestBuildError: If `timeout` is not a positive number of seconds.
        TransportError: If the context is cancelled or its deadline has passed.
    """
    if timeout is None:
        effective = float(DEFAULT_REQUEST_TIMEOUT)
    else:
        try:
            effective = float(timeout)
        except (TypeError, ValueError):
            effective = float("nan")
        # NaN fails this comparison too
        if isinstance(timeout, bool) or not effective > 0:
            raise RequestBuildError(
                "Request timeout must be a positive number of seconds",
                url=url,
                details=repr(timeout),
            )

    if context is not None:
        context.check(url)
        remaining = context.remaining()
        if remaining is not None:
            # The deadline can pass between check() and remaining()
            if remaining <= 0:
                raise TransportError("Request deadline exceeded", url=url)
            effective = min(effective, remaining)
    return effective


def _close_abandoned(future: "Future[requests.Response]", url: str) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    _close_quietly(future.result(), "abandoned HTTP response", url)


def _send_request(
    session: requests.Session,
    url: str,
    headers: dict,
    timeout: float,
    context: Optional[FetchContext],
) -> requests.Response:
    """
    Send the GET request, returning as soon as the context is cancelled or expires.

    Without a context the request runs on the calling thread. With one it runs
    on a worker thread while the caller waits for the response, cancellation or
    the deadline, whichever comes first. An abandoned request keeps running
    until its own timeout and its response is closed when it arrives.

    Raises:
        TransportError: If the context is cancelled or expires before the
            response headers arrive.
        requests.exceptions.RequestException: Propagated from the session.
    """
    if context is None:
        return session.get(url, headers=headers, timeout=timeout, stream=True)

    wake = threading.Event()
    unregister = context.on_cancel(wake.set)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sofafeed-fetch")
    try:
        future = executor.submit(
            session.get, url, headers=headers, timeout=timeout, stream=True
        )
        future.add_done_callback(lambda _future: wake.set())
        wake.wait(context.remaining())

        if future.done():
            return future.result()

        logger.debug(f"Abandoning in-flight request to {url}")
        future.add_done_callback(lambda f: _close_abandoned(f, url))
        context.check(url)
        raise TransportError("Request deadline exceeded", url=url)
    finally:
        unregister()
        executor.shutdown(wait=False)


def _read_body(
    response: requests.Response, url: str, context: Optional[FetchContext]
) -> bytes:
    chunks: List[bytes] = []
    try:
        for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
            if context is not None:
                context.check(url)
            if chunk:
                chunks.append(chunk)
    except (
        requests.exceptions.RequestException,
        urllib3.exceptions.HTTPError,
        OSError,
        ValueError,
    ) as e:
        # Closing the response from cancel() surfaces here as a read failure
        if context is not None and (context.cancelled or context.expired()):
            raise TransportError(
                "Request cancelled while reading response body",
                url=url,
                details=str(e),
            ) from e
        raise ResponseBodyError(
            "Failed to read response body", url=url, details=str(e)
        ) from e
    if context is not None:
        context.check(url)
    return b"".join(chunks)


def fetch_feed_bytes(
    url: str,
    client: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    context: Optional[FetchContext] = None,
) -> bytes:
    """
    Fetch a feed's raw JSON bytes with a single GET request.

    The request carries ``Accept: application/json`` and a ``sofafeed/<version>``
    User-Agent. The response is always closed before returning or raising.

    Parameters:
        url (str): Absolute http(s) URL of the feed.
        client (Optional[requests.Session]): Session to send the request with. When
            omitted a new session is created for this call and closed afterwards.
        timeout (Optional[float]): Seconds to wait for the server; defaults to 30.
            A context deadline that is sooner takes precedence.
        context (Optional[FetchContext]): Deadline and cancellation for the call.

    Returns:
        bytes: The complete response body of a 200 OK response.

    Raises:
        RequestBuildError: If the URL or context is invalid.
        TransportError: On connection failure, timeout or cancellation.
        UnexpectedStatusError: If the status is not 200; carries `status_code`.
        ResponseBodyError: If reading the body fails after headers arrived.
    """
    headers = {
        "Accept": ACCEPT_HEADER_VALUE,
        "User-Agent": get_user_agent(),
    }
    _validate_request(url, context, headers)
    effective_timeout = _effective_timeout(timeout, context, url)

    owns_session = client is None
    session = requests.Session() if owns_session else client
    response = None
    unregister: Optional[Callable[[], None]] = None
    try:
        logger.debug(f"Fetching feed from {url} (timeout {effective_timeout:.1f}s)")
        try:
            response = _send_request(
                session, url, headers, effective_timeout, context
            )
        except _REQUEST_BUILD_EXCEPTIONS as e:
            raise RequestBuildError(
                "Failed to create fetch request", url=url, details=str(e)
            ) from e
        except (requests.exceptions.RequestException, urllib3.exceptions.HTTPError) as e:
            raise TransportError(
                "Failed to perform HTTP request", url=url, details=str(e)
            ) from e

        if context is not None:
            unregister = context.on_cancel(response.close)
            context.check(url)

        logger.debug(
            f"Received HTTP response status code: {response.status_code} for URL: {url}"
        )
        if response.status_code != HTTP_STATUS_OK:
            raise UnexpectedStatusError(response.status_code, url=url)

        body = _read_body(response, url, context)
        logger.debug(f"Fetched {len(body)} bytes from {url}")
        return body
    finally:
        if unregister is not None:
            unregister()
        if response is not None:
            _close_quietly(response, "HTTP response", url)
        if owns_session:
            _close_quietly(session, "HTTP session", url)
