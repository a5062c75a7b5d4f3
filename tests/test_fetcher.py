"""Tests for the fetch strategies and orchestrator.

All network calls are intercepted by respx.
"""

from __future__ import annotations

import threading

import httpx
import pytest
import respx

from jobtext.config import Settings
from jobtext.errors import ExtractionCancelled
from jobtext.scraper.fetcher import (
    DirectFetch,
    FetchOrchestrator,
    ProxyFetch,
    build_default_strategies,
    fetch_attempt,
    proxy_variants,
)
from jobtext.scraper.models import FetchAttempt

TARGET = "https://jobs.example.com/1"
PROXY_HOST = "r.jina.ai"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def settings() -> Settings:
    return Settings(
        direct_timeout=20.0,
        proxy_timeout=25.0,
        proxy_url_template="https://r.jina.ai/{url}",
        max_body_bytes=5 * 1024 * 1024,
    )


@pytest.fixture()
def client():
    with httpx.Client() as c:
        yield c


def _attempt(url: str = TARGET, timeout: float = 20.0) -> FetchAttempt:
    return FetchAttempt(url=url, identity="desktop", timeout=timeout, headers={})


# ---------------------------------------------------------------------------
# Attempt planning
# ---------------------------------------------------------------------------

class TestAttemptPlan:
    def test_proxy_variants(self) -> None:
        assert proxy_variants("https://jobs.example.com/1?x=2") == [
            "https://jobs.example.com/1?x=2",
            "http://jobs.example.com/1?x=2",
            "jobs.example.com/1?x=2",
        ]

    def test_default_order(self, settings: Settings) -> None:
        orchestrator = FetchOrchestrator(settings)
        attempts = orchestrator.attempts(TARGET)

        assert [a.identity for a in attempts] == [
            "desktop",
            "mobile",
            "proxy:1",
            "proxy:2",
            "proxy:3",
        ]
        assert [a.url for a in attempts] == [
            TARGET,
            TARGET,
            "https://r.jina.ai/https://jobs.example.com/1",
            "https://r.jina.ai/http://jobs.example.com/1",
            "https://r.jina.ai/jobs.example.com/1",
        ]
        assert [a.timeout for a in attempts] == [20.0, 20.0, 25.0, 25.0, 25.0]

    def test_identities_use_distinct_user_agents(self, settings: Settings) -> None:
        desktop, mobile = FetchOrchestrator(settings).attempts(TARGET)[:2]
        assert desktop.headers["User-Agent"] == settings.desktop_user_agent
        assert mobile.headers["User-Agent"] == settings.mobile_user_agent
        assert desktop.headers["User-Agent"] != mobile.headers["User-Agent"]

    def test_proxy_disabled_with_blank_template(self) -> None:
        settings = Settings(proxy_url_template="")
        strategies = build_default_strategies(settings)
        assert [s.name for s in strategies] == ["desktop", "mobile"]

    def test_custom_strategies(self, settings: Settings) -> None:
        orchestrator = FetchOrchestrator(
            settings, strategies=[ProxyFetch(settings), DirectFetch("desktop", "UA", settings)]
        )
        assert [a.identity for a in orchestrator.attempts(TARGET)][-1] == "desktop"


# ---------------------------------------------------------------------------
# fetch_attempt
# ---------------------------------------------------------------------------

class TestFetchAttempt:
    @respx.mock
    def test_success(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(200, text="<html><body>Job</body></html>")
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert result.ok
        assert result.status_code == 200
        assert "Job" in result.body
        assert result.error is None

    @respx.mock
    def test_sends_attempt_headers(self, client: httpx.Client) -> None:
        route = respx.get(TARGET).respond(200, text="ok")
        attempt = FetchAttempt(
            url=TARGET, identity="mobile", timeout=5.0, headers={"User-Agent": "Phone/1.0"}
        )
        fetch_attempt(client, attempt, max_bytes=1024)
        assert route.calls.last.request.headers["User-Agent"] == "Phone/1.0"

    @respx.mock
    def test_non_2xx_is_failure(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(403, text="Forbidden")
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert not result.ok
        assert result.status_code == 403
        assert result.error == "HTTP 403"
        assert result.body == ""

    @respx.mock
    def test_connect_error_is_failure(self, client: httpx.Client) -> None:
        respx.get(TARGET).mock(side_effect=httpx.ConnectError)
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert not result.ok
        assert result.error.startswith("ConnectError")

    @respx.mock
    def test_timeout_is_failure(self, client: httpx.Client) -> None:
        respx.get(TARGET).mock(side_effect=httpx.ReadTimeout)
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert not result.ok
        assert result.error == "timed out after 20s"

    @respx.mock
    def test_blank_body_is_failure(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(200, text="  \n\t ")
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert not result.ok
        assert result.error == "empty body"

    @respx.mock
    def test_body_capped_at_max_bytes(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(200, content=b"x" * 100)
        result = fetch_attempt(client, _attempt(), max_bytes=10)
        assert result.body == "x" * 10

    @respx.mock
    def test_deadline_exceeded_while_reading(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(200, text="slow body")
        ticks = iter([0.0, 0.0])
        result = fetch_attempt(
            client, _attempt(timeout=20.0), max_bytes=1024, clock=lambda: next(ticks, 30.0)
        )
        assert not result.ok
        assert result.error == "timed out after 20s"
        assert result.elapsed_ms == 30000

    @respx.mock
    def test_follows_redirects(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(302, headers={"Location": "https://jobs.example.com/2"})
        respx.get("https://jobs.example.com/2").respond(200, text="moved here")
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert result.ok
        assert result.body == "moved here"

    @respx.mock
    def test_cancel_while_reading(self, client: httpx.Client) -> None:
        route = respx.get(TARGET).respond(200, text="body")
        cancel = threading.Event()
        ticks = []

        def clock() -> float:
            # Second reading is the pre-send budget check; cancel once the request is out.
            ticks.append(None)
            if len(ticks) == 2:
                cancel.set()
            return 0.0

        with pytest.raises(ExtractionCancelled):
            fetch_attempt(client, _attempt(), max_bytes=1024, cancel=cancel, clock=clock)
        assert route.call_count == 1

    def test_cancel_before_send(self, client: httpx.Client) -> None:
        cancel = threading.Event()
        cancel.set()
        with respx.mock(assert_all_called=False) as router:
            route = router.get(TARGET).respond(200, text="body")
            with pytest.raises(ExtractionCancelled):
                fetch_attempt(client, _attempt(), max_bytes=1024, cancel=cancel)
        assert route.call_count == 0

    def test_redirect_chain_shares_deadline(self, client: httpx.Client) -> None:
        ticks = iter([0.0, 0.0])
        with respx.mock(assert_all_called=False) as router:
            router.get(TARGET).respond(302, headers={"Location": "https://jobs.example.com/2"})
            second = router.get("https://jobs.example.com/2").respond(200, text="late")
            result = fetch_attempt(
                client, _attempt(timeout=20.0), max_bytes=1024, clock=lambda: next(ticks, 30.0)
            )

        assert result.error == "timed out after 20s"
        assert result.status_code is None
        assert second.call_count == 0

    @respx.mock
    def test_redirect_hop_gets_remaining_budget(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(302, headers={"Location": "https://jobs.example.com/2"})
        second = respx.get("https://jobs.example.com/2").respond(200, text="moved here")
        ticks = iter([0.0, 0.0])

        result = fetch_attempt(
            client, _attempt(timeout=20.0), max_bytes=1024, clock=lambda: next(ticks, 15.0)
        )

        assert result.ok
        assert second.calls.last.request.extensions["timeout"] == httpx.Timeout(5.0).as_dict()

    @respx.mock
    def test_redirect_loop_is_failure(self, client: httpx.Client) -> None:
        respx.get(TARGET).respond(302, headers={"Location": TARGET})
        result = fetch_attempt(client, _attempt(), max_bytes=1024)
        assert not result.ok
        assert result.error.startswith("TooManyRedirects")


# ---------------------------------------------------------------------------
# FetchOrchestrator.fetch_all
# ---------------------------------------------------------------------------

class TestFetchAll:
    @respx.mock
    def test_yields_only_successes_in_order(self, settings: Settings, client: httpx.Client) -> None:
        direct = respx.get(TARGET).mock(
            side_effect=[httpx.Response(403), httpx.ConnectError("refused")]
        )
        proxy = respx.get(host=PROXY_HOST).mock(
            side_effect=[
                httpx.Response(500),
                httpx.Response(200, text="proxy two"),
                httpx.Response(200, text="proxy three"),
            ]
        )
        orchestrator = FetchOrchestrator(settings, client=client)

        results = list(orchestrator.fetch_all(TARGET))

        assert [r.attempt.identity for r in results] == ["proxy:2", "proxy:3"]
        assert [r.body for r in results] == ["proxy two", "proxy three"]
        assert direct.call_count == 2
        assert proxy.call_count == 3
        assert [str(c.request.url) for c in proxy.calls] == [
            "https://r.jina.ai/https://jobs.example.com/1",
            "https://r.jina.ai/http://jobs.example.com/1",
            "https://r.jina.ai/jobs.example.com/1",
        ]

    def test_stops_when_consumer_stops(self, settings: Settings, client: httpx.Client) -> None:
        with respx.mock(assert_all_called=False) as router:
            direct = router.get(TARGET).respond(200, text="first")
            proxy = router.get(host=PROXY_HOST).respond(200, text="never")
            results = FetchOrchestrator(settings, client=client).fetch_all(TARGET)

            first = next(results)
            results.close()

        assert first.attempt.identity == "desktop"
        assert direct.call_count == 1
        assert proxy.call_count == 0

    @respx.mock
    def test_all_fail_yields_nothing(self, settings: Settings, client: httpx.Client) -> None:
        respx.get(TARGET).respond(404)
        respx.get(host=PROXY_HOST).mock(side_effect=httpx.ConnectTimeout)
        assert list(FetchOrchestrator(settings, client=client).fetch_all(TARGET)) == []

    def test_cancelled_before_first_attempt(self, settings: Settings, client: httpx.Client) -> None:
        cancel = threading.Event()
        cancel.set()
        with respx.mock(assert_all_called=False) as router:
            route = router.get(TARGET).respond(200, text="body")
            with pytest.raises(ExtractionCancelled):
                next(FetchOrchestrator(settings, client=client).fetch_all(TARGET, cancel=cancel))
        assert route.call_count == 0

    @respx.mock
    def test_owns_client_when_none_injected(self) -> None:
        route = respx.get(TARGET).respond(200, text="body")
        settings = Settings(proxy_url_template="")
        results = list(FetchOrchestrator(settings).fetch_all(TARGET))
        assert [r.attempt.identity for r in results] == ["desktop", "mobile"]
        assert route.call_count == 2
