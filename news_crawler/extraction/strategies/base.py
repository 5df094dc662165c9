"""
Base selector strategy.

A strategy holds ordered fallback lists of CSS selectors and XPath
expressions for each article field. Subclasses only declare the lists;
the lookup rules live here.
"""

import copy
from datetime import datetime
from typing import Any

from bs4 import BeautifulSoup
from lxml import etree

from news_crawler.extraction.html_utils import (
    MIN_CONTENT_CHARS,
    MIN_PARAGRAPH_CHARS,
    clean_text,
    content_from_element,
    element_text,
    normalize_inline,
    parse_publish_time,
    publish_time_from_element,
    safe_select,
    safe_select_one,
    to_lxml_tree,
)
from news_crawler.extraction.models import ExtractedContent
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# 제목으로 인정하는 최소 길이 (이하이면 다음 셀렉터를 시도)
MIN_TITLE_CHARS: int = 10
# 요약으로 인정하는 최소 길이
MIN_SUMMARY_CHARS: int = 20

_XPATH_BOILERPLATE: str = (
    ".//script | .//style | .//nav | .//footer | .//aside"
    " | .//*[contains(concat(' ', normalize-space(@class), ' '), ' ad ')]"
    " | .//*[contains(concat(' ', normalize-space(@class), ' '), ' advertisement ')]"
    " | .//*[contains(concat(' ', normalize-space(@class), ' '), ' social-share ')]"
)


class SelectorStrategy:
    """Field lookup driven by per-site selector lists."""

    name: str = "generic"

    title_selectors: tuple[str, ...] = ()
    summary_selectors: tuple[str, ...] = ()
    content_selectors: tuple[str, ...] = ()
    time_selectors: tuple[str, ...] = ("time[datetime]",)

    xpath_title: tuple[str, ...] = ()
    xpath_summary: tuple[str, ...] = ()
    xpath_content: tuple[str, ...] = ()
    xpath_time: tuple[str, ...] = ("//time/@datetime",)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"

    # ── CSS ────────────────────────────────────────────────────

    def extract_with_selector(self, doc: BeautifulSoup, url: str) -> ExtractedContent | None:
        """Extract the article using the CSS selector lists.

        Returns None unless both a title and body text were found.
        """
        title = self.find_title(doc)
        if not title:
            return None
        content = self.find_content(doc)
        if not content:
            return None
        return ExtractedContent(
            title=title,
            full_text=content,
            summary=self.find_summary(doc) or None,
            publish_time=self.find_publish_time(doc),
        )

    def find_title(self, doc: BeautifulSoup) -> str:
        fallback = ""
        for selector in self.title_selectors:
            text = element_text(safe_select_one(doc, selector))
            if len(text) > MIN_TITLE_CHARS:
                return text
            if text and not fallback:
                fallback = text
        return fallback

    def find_summary(self, doc: BeautifulSoup) -> str:
        fallback = ""
        for selector in self.summary_selectors:
            text = element_text(safe_select_one(doc, selector))
            if len(text) > MIN_SUMMARY_CHARS:
                return text
            if text and not fallback:
                fallback = text
        return fallback

    def find_content(self, doc: BeautifulSoup) -> str:
        """First candidate longer than the content minimum, else the longest one."""
        best = ""
        for selector in self.content_selectors:
            matches = safe_select(doc, selector)
            if not matches:
                continue
            if matches[0].name == "p":
                # selector targets the paragraphs themselves
                texts = [element_text(p) for p in matches]
                content = "\n\n".join(t for t in texts if t)
            else:
                content = content_from_element(matches[0])
            if len(content) > MIN_CONTENT_CHARS:
                return content
            if len(content) > len(best):
                best = content
        return best

    def find_publish_time(self, doc: BeautifulSoup) -> datetime | None:
        for selector in self.time_selectors:
            parsed = publish_time_from_element(safe_select_one(doc, selector))
            if parsed is not None:
                return parsed
        return None

    # ── XPath ──────────────────────────────────────────────────

    def extract_with_xpath(
        self,
        doc: BeautifulSoup,
        url: str,
        tree: Any | None = None,
    ) -> ExtractedContent | None:
        """Extract the article using the XPath lists.

        ``tree`` is an lxml tree of the same page; it is built from ``doc``
        when not supplied. Strategies without XPath lists fall back to
        the CSS path.
        """
        if not self.xpath_title or not self.xpath_content:
            return self.extract_with_selector(doc, url)
        if tree is None:
            tree = to_lxml_tree(str(doc))

        title = self._first_xpath_text(tree, self.xpath_title, MIN_TITLE_CHARS)
        if not title:
            return None
        content = xpath_content_text(tree, self.xpath_content)
        if not content:
            return None
        summary = self._first_xpath_text(tree, self.xpath_summary, MIN_SUMMARY_CHARS)

        publish_time = None
        for expr in self.xpath_time:
            values = evaluate_xpath(tree, expr)
            if values:
                publish_time = parse_publish_time(_node_text(values[0]))
                if publish_time is not None:
                    break

        return ExtractedContent(
            title=title,
            full_text=content,
            summary=summary or None,
            publish_time=publish_time,
        )

    @staticmethod
    def _first_xpath_text(tree: Any, expressions: tuple[str, ...], min_chars: int) -> str:
        fallback = ""
        for expr in expressions:
            values = evaluate_xpath(tree, expr)
            if not values:
                continue
            text = normalize_inline(_node_text(values[0]))
            if len(text) > min_chars:
                return text
            if text and not fallback:
                fallback = text
        return fallback


def evaluate_xpath(tree: Any, expr: str) -> list[Any]:
    """Evaluate ``expr``; invalid expressions match nothing."""
    if not expr:
        return []
    try:
        result = tree.xpath(expr)
    except etree.XPathError as exc:
        logger.debug("Invalid XPath %r: %s", expr, exc)
        return []
    if isinstance(result, list):
        return result
    # string(), count() and friends return scalars
    return [str(result)] if result not in ("", None) else []


def xpath_content_text(tree: Any, expressions: tuple[str, ...] | list[str]) -> str:
    """Body text for the first XPath that yields substantial content."""
    best = ""
    for expr in expressions:
        nodes = evaluate_xpath(tree, expr)
        if not nodes:
            continue
        content = _content_from_nodes(nodes)
        if len(content) > MIN_CONTENT_CHARS:
            return content
        if len(content) > len(best):
            best = content
    return best


def _content_from_nodes(nodes: list[Any]) -> str:
    first = nodes[0]
    if not isinstance(first, etree._Element):
        return clean_text("\n\n".join(str(n) for n in nodes))
    if first.tag == "p" or len(nodes) > 1:
        texts = [normalize_inline(_node_text(n)) for n in nodes]
        return "\n\n".join(t for t in texts if t)

    container = copy.deepcopy(first)
    for junk in container.xpath(_XPATH_BOILERPLATE):
        junk.drop_tree()
    paragraphs = [normalize_inline(p.text_content()) for p in container.iter("p")]
    paragraphs = [t for t in paragraphs if len(t) > MIN_PARAGRAPH_CHARS]
    if paragraphs:
        return "\n\n".join(paragraphs)
    return clean_text(container.text_content())


def _node_text(node: Any) -> str:
    if isinstance(node, etree._Element):
        return node.text_content()
    return str(node)
