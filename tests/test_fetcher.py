"""
Tests for the page fetcher: failure classification, the retry loop and the
headless-browser path (page and context are released on every exit).
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from news_crawler.crawler.exceptions import FetchError
from news_crawler.crawler.fetcher import Fetcher, classify_exception, classify_status


URL = "https://cointelegraph.com/news/x"


@pytest.fixture
def fetcher(settings):
    return Fetcher(settings)


# ============================================================
# TEST: CLASSIFICATION
# ============================================================

class TestClassification:

    @pytest.mark.parametrize(
        "status, kind, fatal",
        [
            (401, "blocked", True),
            (403, "blocked", True),
            (404, "http_error", True),
            (429, "rate_limited", False),
            (500, "server_error", False),
            (503, "server_error", False),
        ],
    )
    def test_status(self, status, kind, fatal):
        error = classify_status(URL, status)

        assert error.kind == kind
        assert error.fatal is fatal
        assert error.status == status

    def test_expired_certificate_is_fatal(self):
        error = classify_exception(URL, OSError("certificate has expired (_ssl.c:1006)"))

        assert error.kind == "cert_expired"
        assert error.fatal is True

    def test_header_overflow_is_fatal(self):
        error = classify_exception(URL, aiohttp.ClientPayloadError("Got more than 8190 bytes"))

        assert error.kind == "header_overflow"
        assert error.fatal is True

    def test_timeout_is_transient(self):
        error = classify_exception(URL, asyncio.TimeoutError())

        assert error.kind == "timeout"
        assert error.fatal is False

    def test_connection_reset_is_transient(self):
        error = classify_exception(URL, aiohttp.ServerDisconnectedError())

        assert error.kind == "network"
        assert error.fatal is False


# ============================================================
# TEST: RETRY LOOP
# ============================================================

class TestFetchRetry:

    @pytest.mark.asyncio
    async def test_success_first_try(self, fetcher):
        with patch.object(fetcher, "_http_get", AsyncMock(return_value="<html></html>")) as get:
            html = await fetcher.fetch(URL, "cointelegraph")

        assert html == "<html></html>"
        get.assert_awaited_once_with(URL)

    @pytest.mark.asyncio
    async def test_blocked_is_not_retried(self, fetcher):
        blocked = classify_status(URL, 401)
        with patch.object(fetcher, "_http_get", AsyncMock(side_effect=blocked)) as get, \
                patch("news_crawler.crawler.fetcher.asyncio.sleep", AsyncMock()) as sleep:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch(URL, "cointelegraph")

        assert exc_info.value.kind == "blocked"
        assert get.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, fetcher):
        transient = classify_status(URL, 503)
        with patch.object(
            fetcher, "_http_get", AsyncMock(side_effect=[transient, "<html>ok</html>"])
        ) as get, patch("news_crawler.crawler.fetcher.asyncio.sleep", AsyncMock()) as sleep:
            html = await fetcher.fetch(URL, "cointelegraph")

        assert html == "<html>ok</html>"
        assert get.await_count == 2
        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_transient_error_exhausts_attempts(self, fetcher):
        transient = classify_exception(URL, asyncio.TimeoutError())
        with patch.object(fetcher, "_http_get", AsyncMock(side_effect=transient)) as get, \
                patch("news_crawler.crawler.fetcher.asyncio.sleep", AsyncMock()) as sleep:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch(URL, "cointelegraph")

        assert exc_info.value.fatal is False
        assert get.await_count == 3
        # linear backoff between attempts
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_browser_source_falls_back_to_http(self, fetcher):
        with patch.object(fetcher, "ensure_browser_ready", AsyncMock(return_value=None)), \
                patch.object(fetcher, "_http_get", AsyncMock(return_value="<html/>")) as get:
            html = await fetcher.fetch("https://www.bloomberg.com/news/articles/x", "bloomberg")

        assert html == "<html/>"
        get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_browser_source_uses_browser(self, fetcher):
        browser = object()
        with patch.object(fetcher, "ensure_browser_ready", AsyncMock(return_value=browser)), \
                patch.object(fetcher, "_browser_get", AsyncMock(return_value="<rendered/>")) as bget, \
                patch.object(fetcher, "_http_get", AsyncMock()) as get:
            html = await fetcher.fetch("https://www.reuters.com/article/x", "reuters")

        assert html == "<rendered/>"
        bget.assert_awaited_once_with("https://www.reuters.com/article/x", browser)
        get.assert_not_awaited()


# ============================================================
# TEST: BROWSER PATH
# ============================================================

def _page(status=200, html="<html><article>rendered</article></html>"):
    page = MagicMock()
    page.url = URL
    page.goto = AsyncMock(return_value=MagicMock(status=status))
    page.wait_for_function = AsyncMock()
    page.evaluate = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=html)
    page.close = AsyncMock()
    return page


def _browser(page=None, new_page_error=None):
    context = MagicMock()
    if new_page_error is not None:
        context.new_page = AsyncMock(side_effect=new_page_error)
    else:
        context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    return browser, context


class TestBrowserGet:

    @pytest.mark.asyncio
    async def test_returns_rendered_html_and_releases_page(self, fetcher):
        page = _page()
        browser, context = _browser(page)

        html = await fetcher._browser_get(URL, browser)

        assert "rendered" in html
        assert page.goto.await_args.kwargs["wait_until"] == "networkidle"
        assert page.goto.await_args.kwargs["timeout"] == 60_000
        page.evaluate.assert_awaited_once()
        page.close.assert_awaited_once()
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_secondary_wait_timeouts_are_ignored(self, fetcher):
        page = _page()
        page.wait_for_function.side_effect = PlaywrightTimeoutError("readyState")
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("article")
        browser, _ = _browser(page)

        html = await fetcher._browser_get(URL, browser)

        assert "rendered" in html
        assert page.wait_for_selector.await_args.kwargs["timeout"] == 5_000

    @pytest.mark.asyncio
    async def test_blocked_status_is_fatal_and_page_closed(self, fetcher):
        page = _page(status=403)
        browser, context = _browser(page)

        with pytest.raises(FetchError) as exc_info:
            await fetcher._browser_get(URL, browser)

        assert exc_info.value.kind == "blocked"
        assert exc_info.value.fatal is True
        page.content.assert_not_awaited()
        page.close.assert_awaited_once()
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_failure_is_transient_and_page_closed(self, fetcher):
        page = _page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 60000ms exceeded")
        browser, context = _browser(page)

        with pytest.raises(FetchError) as exc_info:
            await fetcher._browser_get(URL, browser)

        assert exc_info.value.kind == "timeout"
        assert exc_info.value.fatal is False
        page.close.assert_awaited_once()
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_page_failure_still_closes_context(self, fetcher):
        browser, context = _browser(new_page_error=PlaywrightError("Target page crashed"))

        with pytest.raises(FetchError) as exc_info:
            await fetcher._browser_get(URL, browser)

        assert exc_info.value.kind == "browser"
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_close_failure_still_closes_context(self, fetcher):
        page = _page()
        page.close.side_effect = RuntimeError("page already gone")
        browser, context = _browser(page)

        with pytest.raises(RuntimeError):
            await fetcher._browser_get(URL, browser)

        context.close.assert_awaited_once()


# ============================================================
# TEST: TLS / LIFECYCLE
# ============================================================

class TestFetcherMisc:

    def test_insecure_tls_only_for_listed_hosts(self, fetcher):
        assert fetcher._ssl_for("https://cryptonews.io/news/a") is False
        assert fetcher._ssl_for("https://www.cryptonews.io/news/a") is False
        assert fetcher._ssl_for("https://cointelegraph.com/news/a") is True

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fetcher):
        await fetcher.close()
        await fetcher.close()

        assert await fetcher.ensure_browser_ready() is None
