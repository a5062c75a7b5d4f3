"""Bounded, multi-identity HTTP fetching with a render-as-text proxy fallback.

Strategy order (each strategy contributes one or more attempts):
  1. Direct fetch posing as a desktop browser.
  2. Direct fetch posing as a mobile browser.
  3. The render-as-text proxy, against the target under ``https://``,
     ``http://`` and without a scheme.

Attempts run one at a time.  Every failure (transport error, timeout,
non-2xx status, empty body) is logged and swallowed; the caller only sees
the successful :class:`FetchResult` objects, in attempt order.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterator, Optional, Sequence

import httpx

from jobtext.config import Settings
from jobtext.errors import ExtractionCancelled
from jobtext.scraper.models import FetchAttempt, FetchResult

logger = logging.getLogger(__name__)

_MAX_REDIRECTS = 20
_PROXY_ACCEPT = "text/plain,text/markdown;q=0.9,text/html;q=0.8,*/*;q=0.5"


class _DeadlineExceeded(Exception):
    """The attempt's wall-clock budget ran out."""


def _check_cancelled(cancel: Optional[threading.Event], url: str) -> None:
    if cancel is not None and cancel.is_set():
        raise ExtractionCancelled("Extraction was cancelled.", url=url)


def _browser_headers(user_agent: str, settings: Settings) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": settings.accept_header,
        "Accept-Language": settings.accept_language,
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def proxy_variants(url: str) -> list[str]:
    """Return the three URL forms handed to the proxy, in order.

    ``https://host/path``, ``http://host/path`` and the scheme-less
    ``host/path``.
    """
    bare = url.split("://", 1)[1] if "://" in url else url
    return [f"https://{bare}", f"http://{bare}", bare]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class FetchStrategy(ABC):
    """One tier of the fallback chain."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identity label used in logs."""

    @abstractmethod
    def attempts(self, url: str) -> list[FetchAttempt]:
        """Return the attempts this strategy makes for *url*, in order."""


class DirectFetch(FetchStrategy):
    """GET the target itself with a browser-like client identity."""

    def __init__(self, identity: str, user_agent: str, settings: Settings) -> None:
        self._identity = identity
        self._headers = _browser_headers(user_agent, settings)
        self._timeout = settings.direct_timeout

    @property
    def name(self) -> str:
        return self._identity

    def attempts(self, url: str) -> list[FetchAttempt]:
        return [
            FetchAttempt(
                url=url,
                identity=self._identity,
                timeout=self._timeout,
                headers=dict(self._headers),
            )
        ]


class ProxyFetch(FetchStrategy):
    """GET the target through a render-as-text proxy URL template."""

    def __init__(self, settings: Settings) -> None:
        self._template = settings.proxy_url_template
        self._timeout = settings.proxy_timeout
        self._headers = {
            "User-Agent": settings.desktop_user_agent,
            "Accept": _PROXY_ACCEPT,
            "Accept-Language": settings.accept_language,
        }

    @property
    def name(self) -> str:
        return "proxy"

    def attempts(self, url: str) -> list[FetchAttempt]:
        return [
            FetchAttempt(
                url=self._template.replace("{url}", variant),
                identity=f"proxy:{index}",
                timeout=self._timeout,
                headers=dict(self._headers),
            )
            for index, variant in enumerate(proxy_variants(url), start=1)
        ]


def build_default_strategies(settings: Settings) -> list[FetchStrategy]:
    """Desktop → mobile → proxy (when a proxy template is configured)."""
    strategies: list[FetchStrategy] = [
        DirectFetch("desktop", settings.desktop_user_agent, settings),
        DirectFetch("mobile", settings.mobile_user_agent, settings),
    ]
    if settings.proxy_enabled:
        strategies.append(ProxyFetch(settings))
    return strategies


# ---------------------------------------------------------------------------
# Single attempt
# ---------------------------------------------------------------------------

def _read_body(
    response: httpx.Response,
    *,
    deadline: float,
    max_bytes: int,
    cancel: Optional[threading.Event],
    clock: Callable[[], float],
) -> bytes:
    chunks: list[bytes] = []
    size = 0
    for chunk in response.iter_bytes():
        _check_cancelled(cancel, str(response.url))
        if clock() > deadline:
            raise _DeadlineExceeded()
        chunks.append(chunk)
        size += len(chunk)
        if size >= max_bytes:
            break
    return b"".join(chunks)[:max_bytes]


def _open(
    client: httpx.Client,
    attempt: FetchAttempt,
    *,
    deadline: float,
    cancel: Optional[threading.Event],
    clock: Callable[[], float],
) -> httpx.Response:
    """Send the GET and follow redirects by hand, one hop at a time.

    Every hop is sent with whatever is left of the attempt's budget as its
    timeout, so a chain of slow redirects cannot outlive *deadline*.
    """
    request = client.build_request("GET", attempt.url, headers=attempt.headers)
    for _ in range(_MAX_REDIRECTS + 1):
        _check_cancelled(cancel, str(request.url))
        remaining = deadline - clock()
        if remaining <= 0:
            raise _DeadlineExceeded()
        request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()
        response = client.send(request, stream=True, follow_redirects=False)
        if response.next_request is None:
            return response
        response.close()
        request = response.next_request
    raise httpx.TooManyRedirects(
        f"Exceeded {_MAX_REDIRECTS} redirects.", request=request
    )


def _decode(response: httpx.Response, raw: bytes) -> str:
    try:
        return raw.decode(response.encoding or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def fetch_attempt(
    client: httpx.Client,
    attempt: FetchAttempt,
    *,
    max_bytes: int,
    cancel: Optional[threading.Event] = None,
    clock: Callable[[], float] = time.monotonic,
) -> FetchResult:
    """Run one :class:`FetchAttempt` and describe what happened.

    Never raises for network problems; the failure reason lands in
    ``FetchResult.error``.  Raises :class:`ExtractionCancelled` if *cancel*
    is set before a redirect hop or while the body is being read.  Redirect
    hops and the body read share one deadline of ``attempt.timeout``.

    *clock* measures the wall-clock deadline; tests substitute a fake.
    """
    result = FetchResult(attempt=attempt)
    started = clock()
    deadline = started + attempt.timeout
    try:
        response = _open(client, attempt, deadline=deadline, cancel=cancel, clock=clock)
        try:
            result.status_code = response.status_code
            if not response.is_success:
                result.error = f"HTTP {response.status_code}"
            else:
                raw = _read_body(
                    response,
                    deadline=deadline,
                    max_bytes=max_bytes,
                    cancel=cancel,
                    clock=clock,
                )
                result.body = _decode(response, raw)
                if not result.body.strip():
                    result.body = ""
                    result.error = "empty body"
        finally:
            response.close()
    except (httpx.TimeoutException, _DeadlineExceeded):
        result.error = f"timed out after {attempt.timeout:g}s"
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        result.error = f"{type(exc).__name__}: {exc}"
    result.elapsed_ms = int((clock() - started) * 1000)
    return result


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class FetchOrchestrator:
    """Walk the ordered attempt list, yielding each successful fetch.

    Args:
        settings: Timeouts, identities, proxy template and body cap.
        client: Optional shared ``httpx.Client``.  When omitted a fresh client
            is created per :meth:`fetch_all` call and closed afterwards.
        strategies: Override the default desktop → mobile → proxy chain.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[httpx.Client] = None,
        strategies: Optional[Sequence[FetchStrategy]] = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._strategies = list(
            strategies if strategies is not None else build_default_strategies(settings)
        )

    @property
    def strategies(self) -> list[FetchStrategy]:
        return list(self._strategies)

    def attempts(self, url: str) -> list[FetchAttempt]:
        """Flatten every strategy's attempts for *url* into one ordered list."""
        return [a for strategy in self._strategies for a in strategy.attempts(url)]

    def fetch_all(
        self, url: str, cancel: Optional[threading.Event] = None
    ) -> Iterator[FetchResult]:
        """Lazily yield successful results; stop iterating to stop fetching."""
        client = self._client or httpx.Client(follow_redirects=True)
        try:
            for attempt in self.attempts(url):
                _check_cancelled(cancel, url)
                logger.debug(
                    "fetch.attempt",
                    extra={"url": attempt.url, "identity": attempt.identity},
                )
                result = fetch_attempt(
                    client,
                    attempt,
                    max_bytes=self._settings.max_body_bytes,
                    cancel=cancel,
                )
                if not result.ok:
                    logger.warning(
                        "fetch.failed",
                        extra={
                            "url": attempt.url,
                            "identity": attempt.identity,
                            "status": result.status_code,
                            "error": result.error,
                            "elapsed_ms": result.elapsed_ms,
                        },
                    )
                    continue
                logger.info(
                    "fetch.success",
                    extra={
                        "url": attempt.url,
                        "identity": attempt.identity,
                        "status": result.status_code,
                        "bytes": len(result.body),
                        "elapsed_ms": result.elapsed_ms,
                    },
                )
                yield result
        finally:
            if self._client is None:
                client.close()
