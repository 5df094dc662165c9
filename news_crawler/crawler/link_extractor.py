"""
Article link discovery on listing pages.
"""

from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

from news_crawler.crawler.sources_config import DEFAULT_LINK_SELECTORS, get_source_config
from news_crawler.extraction.html_utils import safe_select
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)


def _absolute(href: str, base_url: str) -> str | None:
    href = href.strip()
    if not href or href.startswith(("javascript:", "mailto:", "tel:", "#")):
        return None
    absolute, _ = urldefrag(urljoin(base_url, href))
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    return absolute


def _same_site(url: str, host: str) -> bool:
    link_host = (urlparse(url).hostname or "").lower()
    return link_host == host or link_host.endswith("." + host.removeprefix("www."))


def extract_article_links(doc: BeautifulSoup, source: str, base_url: str) -> list[str]:
    """Return absolute, de-duplicated article URLs found on a listing page.

    Links must stay on the listing page's host; sources with path tokens
    additionally require one of them in the URL. When the source selectors
    find nothing for such a source, every anchor on the page is scanned.
    """
    cfg = get_source_config(source)
    selectors = cfg["link_selectors"] if cfg else DEFAULT_LINK_SELECTORS
    path_tokens: list[str] = cfg["link_path_tokens"] if cfg else []
    host = (urlparse(base_url).hostname or "").lower()
    base_normalized = base_url.rstrip("/")

    links: list[str] = []
    seen: set[str] = set()

    def _collect(anchors) -> None:
        for anchor in anchors:
            href = anchor.get("href")
            if not isinstance(href, str):
                continue
            url = _absolute(href, base_url)
            if url is None or url in seen or url.rstrip("/") == base_normalized:
                continue
            if not _same_site(url, host):
                continue
            if path_tokens and not any(token in url for token in path_tokens):
                continue
            seen.add(url)
            links.append(url)

    for selector in selectors:
        matches = safe_select(doc, selector)
        if matches:
            logger.debug("[%s] Selector %r found %d elements", source, selector, len(matches))
        _collect(a for a in matches if a.name == "a")
        # 셀렉터가 컨테이너를 가리키면 내부 링크를 쓴다
        _collect(a for m in matches if m.name != "a" for a in m.find_all("a"))

    if not links and path_tokens:
        logger.warning("[%s] No links found with selectors, scanning all anchors", source)
        _collect(doc.find_all("a", href=True))

    logger.info("[%s] Found %d article links on %s", source, len(links), base_url)
    return links
