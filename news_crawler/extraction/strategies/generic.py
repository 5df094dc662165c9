"""
Generic strategy for pages without a dedicated strategy.

Offers a short list of broadly applicable selectors and a readability-style
heuristic that works on bare paragraph/container structure.
"""

from typing import Any

from bs4 import BeautifulSoup

from news_crawler.extraction.html_utils import (
    MIN_CONTENT_CHARS,
    clean_text,
    element_text,
    without_boilerplate,
)
from news_crawler.extraction.models import ExtractedContent
from news_crawler.extraction.strategies.base import SelectorStrategy

# 가독성 휴리스틱에서 단락으로 인정하는 최소 길이
READABILITY_MIN_PARAGRAPH_CHARS: int = 50
# 가독성 휴리스틱 결과로 인정하는 최소 본문 길이
READABILITY_MIN_CONTENT_CHARS: int = 100

# 컨테이너 스캔 시 제외하는 안내 문구
_BOILERPLATE_PHRASES: tuple[str, ...] = ("cookie", "privacy")


class GenericStrategy(SelectorStrategy):
    name = "generic"

    title_selectors = (
        "h1",
        "article h1",
        ".article-title",
        ".post-title",
        '[itemprop="headline"]',
    )
    content_selectors = (
        "article",
        ".article-content",
        ".post-content",
        '[itemprop="articleBody"]',
        ".entry-content",
        "main",
    )
    time_selectors = (
        "time[datetime]",
        '[itemprop="datePublished"]',
        ".publish-date",
        ".article-date",
    )

    def extract_with_xpath(
        self,
        doc: BeautifulSoup,
        url: str,
        tree: Any | None = None,
    ) -> ExtractedContent | None:
        return self.extract_readability(doc, url)

    def extract_readability(self, doc: BeautifulSoup, url: str) -> ExtractedContent | None:
        """Readability-style extraction.

        Collects every paragraph longer than 50 chars; when that gives less
        than 200 chars, uses the largest block container with more than
        200 chars that is not a cookie/privacy notice.
        """
        page = without_boilerplate(doc)

        title = element_text(page.find("h1")) or element_text(doc.find("title"))
        if not title:
            return None

        paragraphs = [element_text(p) for p in page.find_all("p")]
        content = "\n\n".join(
            text for text in paragraphs if len(text) > READABILITY_MIN_PARAGRAPH_CHARS
        )

        if len(content) < MIN_CONTENT_CHARS:
            best = ""
            for block in page.find_all(["div", "section", "main"]):
                text = clean_text(block.get_text("\n", strip=True))
                lowered = text.lower()
                if len(text) <= MIN_CONTENT_CHARS:
                    continue
                if any(phrase in lowered for phrase in _BOILERPLATE_PHRASES):
                    continue
                if len(text) > len(best):
                    best = text
            if len(best) > len(content):
                content = best

        if len(content) < READABILITY_MIN_CONTENT_CHARS:
            return None

        return ExtractedContent(
            title=title,
            full_text=content,
            publish_time=self.find_publish_time(doc),
        )
