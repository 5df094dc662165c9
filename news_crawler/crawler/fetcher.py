"""
Page fetcher.

Plain HTTP through a shared aiohttp session for server-rendered sites, and
a shared headless Chromium (playwright) for client-rendered ones. Both paths
go through the same retry loop: transient failures are retried with a
linear backoff, fatal ones (bot block, broken certificate, oversized
headers) are raised immediately.
"""

from __future__ import annotations

import asyncio
from urllib.parse import urlparse

import aiohttp
from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from news_crawler.crawler.exceptions import FetchError
from news_crawler.crawler.sources_config import uses_browser
from news_crawler.utils.config import Settings, get_settings
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# 모듈 레벨 상수
# ---------------------------------------------------------------------------

_CONNECT_TIMEOUT: float = 10.0

USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_USER_AGENT: str = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REQUEST_HEADERS: dict[str, str] = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}

BROWSER_EXTRA_HEADERS: dict[str, str] = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
}

_VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}

# 렌더링 후 기사 링크가 나타날 때까지 기다리는 셀렉터
_ARTICLE_READY_SELECTOR: str = (
    'a[href*="/article"], a[href*="/articles"], article a, [data-module="Article"]'
)

_READY_STATE_TIMEOUT_MS: int = 10_000
_ARTICLE_SELECTOR_TIMEOUT_MS: int = 5_000
_AFTER_SCROLL_WAIT_MS: int = 3_000
_SETTLE_WAIT_MS: int = 2_000

# 100px씩 페이지 끝까지 스크롤해서 지연 로딩을 깨운다
_SCROLL_SCRIPT: str = """
() => new Promise((resolve) => {
    let total = 0;
    const distance = 100;
    const timer = setInterval(() => {
        window.scrollBy(0, distance);
        total += distance;
        if (total >= document.body.scrollHeight || total > 20000) {
            clearInterval(timer);
            resolve();
        }
    }, 100);
})
"""

_HEADER_OVERFLOW_MARKERS: tuple[str, ...] = (
    "header overflow",
    "header value is too long",
    "got more than",
    "line too long",
    "parse error",
)


# ---------------------------------------------------------------------------
# Failure classification
# ---------------------------------------------------------------------------


def classify_status(url: str, status: int) -> FetchError:
    """Map an HTTP error status to a FetchError."""
    if status in (401, 403):
        return FetchError(url, "blocked", fatal=True, status=status)
    if status == 429:
        return FetchError(url, "rate_limited", fatal=False, status=status)
    if status >= 500:
        return FetchError(url, "server_error", fatal=False, status=status)
    return FetchError(url, "http_error", fatal=True, status=status)


def classify_exception(url: str, exc: BaseException) -> FetchError:
    """Map a transport exception to a FetchError."""
    message = str(exc)
    lowered = message.lower()

    if isinstance(exc, aiohttp.ClientConnectorCertificateError) or "certificate" in lowered:
        kind = "cert_expired" if "expired" in lowered else "tls"
        return FetchError(url, kind, fatal=True, message=message)
    if any(marker in lowered for marker in _HEADER_OVERFLOW_MARKERS):
        return FetchError(url, "header_overflow", fatal=True, message=message)
    if isinstance(exc, aiohttp.TooManyRedirects):
        return FetchError(url, "too_many_redirects", fatal=True, message=message)
    if isinstance(exc, (asyncio.TimeoutError, PlaywrightTimeoutError)):
        return FetchError(url, "timeout", fatal=False, message=message or "timed out")
    if isinstance(exc, PlaywrightError):
        return FetchError(url, "browser", fatal=False, message=message)
    return FetchError(url, "network", fatal=False, message=message)


class Fetcher:
    """Fetches page HTML over HTTP or through the shared headless browser."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._session: aiohttp.ClientSession | None = None
        self._browser_init: asyncio.Task[Browser | None] | None = None
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._closed = False

    # ── HTTP ───────────────────────────────────────────────────

    async def get_session(self) -> aiohttp.ClientSession:
        """Return the shared aiohttp session, creating one if needed."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self._settings.http_timeout_seconds,
                connect=_CONNECT_TIMEOUT,
            )
            self._session = aiohttp.ClientSession(timeout=timeout, headers=REQUEST_HEADERS)
        return self._session

    def _ssl_for(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        for allowed in self._settings.insecure_tls_host_list:
            if host == allowed or host.endswith("." + allowed):
                return False
        return True

    async def _http_get(self, url: str) -> str:
        session = await self.get_session()
        try:
            async with session.get(
                url,
                allow_redirects=True,
                max_redirects=self._settings.http_max_redirects,
                ssl=self._ssl_for(url),
            ) as resp:
                if resp.status >= 400:
                    raise classify_status(url, resp.status)
                return await resp.text(errors="replace")
        except FetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise classify_exception(url, exc) from exc

    # ── Browser ────────────────────────────────────────────────

    async def ensure_browser_ready(self) -> Browser | None:
        """Launch the shared browser once; later callers await the same launch.

        Returns None when the browser cannot be started or the fetcher is closed.
        """
        if self._closed:
            return None
        if self._browser_init is None:
            self._browser_init = asyncio.create_task(self._launch_browser())
        return await asyncio.shield(self._browser_init)

    async def _launch_browser(self) -> Browser | None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
        except PlaywrightError as exc:
            logger.error("Headless browser launch failed, falling back to HTTP: %s", exc)
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
            return None
        logger.info("Headless browser ready")
        return self._browser

    async def _browser_get(self, url: str, browser: Browser) -> str:
        timeout_ms = int(self._settings.browser_navigation_timeout_seconds * 1000)
        try:
            context = await browser.new_context(
                viewport=_VIEWPORT,
                user_agent=BROWSER_USER_AGENT,
                extra_http_headers=BROWSER_EXTRA_HEADERS,
                locale="en-US",
            )
        except PlaywrightError as exc:
            raise classify_exception(url, exc) from exc

        try:
            page = await context.new_page()
            try:
                return await self._render(page, url, timeout_ms)
            finally:
                await page.close()
        except FetchError:
            raise
        except PlaywrightError as exc:
            raise classify_exception(url, exc) from exc
        finally:
            await context.close()

    async def _render(self, page: Page, url: str, timeout_ms: int) -> str:
        response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        if response is not None and response.status >= 400:
            raise classify_status(url, response.status)

        try:
            await page.wait_for_function(
                "document.readyState === 'complete'", timeout=_READY_STATE_TIMEOUT_MS
            )
        except PlaywrightTimeoutError:
            pass
        await page.evaluate(_SCROLL_SCRIPT)
        await page.wait_for_timeout(_AFTER_SCROLL_WAIT_MS)
        try:
            await page.wait_for_selector(
                _ARTICLE_READY_SELECTOR, timeout=_ARTICLE_SELECTOR_TIMEOUT_MS
            )
        except PlaywrightTimeoutError:
            pass
        await page.wait_for_timeout(_SETTLE_WAIT_MS)

        html = await page.content()
        logger.debug("Browser fetched %s (%d chars, final url %s)", url, len(html), page.url)
        return html

    # ── Public API ─────────────────────────────────────────────

    async def fetch(self, url: str, source: str) -> str:
        """Fetch ``url`` for ``source`` and return its HTML.

        Client-rendered sources go through the browser when it is available.

        Raises:
            FetchError: immediately for fatal failures, or after the last
                attempt for transient ones.
        """
        browser = await self.ensure_browser_ready() if uses_browser(source) else None
        if uses_browser(source) and browser is None:
            logger.warning("[%s] Browser unavailable, using plain HTTP for %s", source, url)

        max_attempts = self._settings.fetch_max_attempts
        last_error: FetchError | None = None
        for attempt in range(max_attempts):
            try:
                if browser is not None:
                    return await self._browser_get(url, browser)
                return await self._http_get(url)
            except FetchError as exc:
                if exc.fatal:
                    logger.warning("[%s] Fatal fetch error, not retrying: %s", source, exc)
                    raise
                last_error = exc
                if attempt < max_attempts - 1:
                    delay = (attempt + 1) * self._settings.fetch_backoff_seconds
                    logger.warning(
                        "[%s] Fetch failed (attempt %d/%d), retrying in %.1fs: %s",
                        source,
                        attempt + 1,
                        max_attempts,
                        delay,
                        exc,
                    )
                    await asyncio.sleep(delay)

        logger.error("[%s] Fetch failed after %d attempts: %s", source, max_attempts, last_error)
        raise last_error  # type: ignore[misc]

    async def close(self) -> None:
        """Close the HTTP session and, once, the shared browser."""
        if self._closed:
            return
        self._closed = True

        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

        if self._browser_init is not None:
            if not self._browser_init.done():
                self._browser_init.cancel()
            try:
                await self._browser_init
            except asyncio.CancelledError:
                pass
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Fetcher closed")
