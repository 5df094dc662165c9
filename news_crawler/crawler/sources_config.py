"""
News source configuration.

Each source specifies its listing page, how that page is fetched, how
article links are found on it, and which URL paths count as article pages.

Scheduled sources:
  Bloomberg, Reuters (client-rendered, fetched through the headless browser)
  Cointelegraph, CNBC Crypto (plain HTTP)

Disabled for scheduling but still extractable:
  Yahoo Finance (response header overflow), Investing.com (connection resets)
"""

import re
from enum import Enum
from typing import Any


class NewsSource(str, Enum):
    """Known publishers. The value is the source key stored with each row."""

    BLOOMBERG = "bloomberg"
    REUTERS = "reuters"
    COINTELEGRAPH = "cointelegraph"
    CNBC_CRYPTO = "cnbc-crypto"
    YAHOO_FINANCE = "yahoo-finance"
    INVESTING = "investing"

    @classmethod
    def from_key(cls, key: str) -> "NewsSource | None":
        try:
            return cls(key)
        except ValueError:
            return None


# 리스트 페이지 셀렉터가 아무것도 찾지 못했을 때의 기본값
DEFAULT_LINK_SELECTORS: list[str] = ["article a", 'a[href*="/news/"]']

# 소스별 기사 URL 허용 패턴이 없을 때의 기본값
DEFAULT_ARTICLE_PATTERNS: list[str] = [r"/news/", r"/article/", r"/\d{4}/"]

# 기사 페이지가 아닌 URL 패턴 (카테고리, 태그, 홈 등)
NON_ARTICLE_PATTERNS: list[str] = [
    r"/category/",
    r"/tag/",
    r"/author/",
    r"/$",
    r"/latest-news",
    r"/archive/",
]

NEWS_SOURCES: dict[NewsSource, dict[str, Any]] = {
    NewsSource.BLOOMBERG: {
        "name": "Bloomberg",
        "listing_url": "https://www.bloomberg.com/crypto",
        "enabled": True,
        "use_browser": True,
        "link_selectors": [
            'a[data-module="Article"]',
            "a.story-list-story__info__headline",
            'a[href*="/articles/"]',
            'a[href*="/news/"]',
            'article a[href*="/articles/"]',
            'article a[href*="/news/"]',
            "a.headline",
            "a.story-link",
            "h3 a",
            "h2 a",
            'a[data-track-label="Article"]',
            'a[href*="/crypto/"]',
            '[data-module="Article"] a',
            ".story-list-story a",
        ],
        "link_path_tokens": ["/articles/", "/news/", "/story/", "/crypto/"],
        "article_patterns": [r"/articles/", r"/news/"],
    },
    NewsSource.REUTERS: {
        "name": "Reuters",
        "listing_url": "https://www.reuters.com/finance/cryptocurrency",
        "enabled": True,
        "use_browser": True,
        "link_selectors": [
            'a[data-testid="Link"]',
            "article a",
            'a[href*="/article/"]',
            'a[href*="/breakingviews/"]',
            'a[data-testid="Heading"]',
            "h3 a",
            "h2 a",
            "a.story-collection-module__story__headline",
            "a.media-story-card__headline__link",
            'a[href*="/finance/cryptocurrency"]',
            '[data-testid="Link"]',
        ],
        "link_path_tokens": [
            "/business/finance/",
            "/markets/quote/",
            "/finance/cryptocurrency/",
        ],
        "article_patterns": [r"/article/", r"/breakingviews/"],
    },
    NewsSource.COINTELEGRAPH: {
        "name": "Cointelegraph",
        "listing_url": "https://cointelegraph.com",
        "enabled": True,
        "use_browser": False,
        "link_selectors": ["a.post-card-inline__title-link", "article a"],
        "link_path_tokens": [],
        "article_patterns": [r"/news/", r"/markets/", r"/analysis/", r"/press-releases/"],
    },
    NewsSource.CNBC_CRYPTO: {
        "name": "CNBC Crypto",
        "listing_url": "https://www.cnbc.com/cryptocurrency",
        "enabled": True,
        "use_browser": False,
        "link_selectors": [
            "a.Card-title",
            'a[data-module="Article"]',
            "article a",
            'a[href*="/cryptocurrency/"]',
            "h3 a",
            "a.ArticleCard-title",
        ],
        "link_path_tokens": [],
        "article_patterns": [r"/202\d/", r"/crypto/"],
    },
    NewsSource.YAHOO_FINANCE: {
        "name": "Yahoo Finance",
        "listing_url": "https://finance.yahoo.com/topic/crypto/",
        # 응답 헤더가 너무 커서 파싱에 실패한다
        "enabled": False,
        "use_browser": False,
        "link_selectors": DEFAULT_LINK_SELECTORS,
        "link_path_tokens": [],
        "article_patterns": DEFAULT_ARTICLE_PATTERNS,
    },
    NewsSource.INVESTING: {
        "name": "Investing.com",
        "listing_url": "https://www.investing.com/news/cryptocurrency-news",
        # 연결이 반복적으로 리셋된다
        "enabled": False,
        "use_browser": False,
        "link_selectors": DEFAULT_LINK_SELECTORS,
        "link_path_tokens": [],
        "article_patterns": DEFAULT_ARTICLE_PATTERNS,
    },
}


def get_source_config(source: str) -> dict[str, Any] | None:
    """Return the config for a source key, or None for unknown sources."""
    news_source = NewsSource.from_key(source)
    if news_source is None:
        return None
    return NEWS_SOURCES[news_source]


def get_enabled_sources() -> list[NewsSource]:
    """Sources that are crawled on the schedule, in declaration order."""
    return [src for src, cfg in NEWS_SOURCES.items() if cfg["enabled"]]


def uses_browser(source: str) -> bool:
    cfg = get_source_config(source)
    return bool(cfg and cfg["use_browser"])


def is_article_page(url: str, source: str) -> bool:
    """Heuristic check that ``url`` is an article rather than a listing page.

    Source allow patterns win; then listing/category patterns reject;
    otherwise any URL with more than four ``/``-separated parts is accepted.
    """
    cfg = get_source_config(source)
    patterns = cfg["article_patterns"] if cfg else DEFAULT_ARTICLE_PATTERNS

    if any(re.search(p, url) for p in patterns):
        return True
    if any(re.search(p, url) for p in NON_ARTICLE_PATTERNS):
        return False
    return len(url.split("/")) > 4
