"""
HTML helpers shared by strategies, methods and the template generator.
"""

import copy
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from bs4 import BeautifulSoup, Tag
from lxml import etree
from lxml import html as lxml_html
from soupsieve import SelectorSyntaxError

from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# 본문 결합 전에 제거할 요소
BOILERPLATE_SELECTOR: str = (
    "script, style, nav, footer, aside, .ad, .advertisement, .social-share"
)

# 단락으로 인정하는 최소 길이
MIN_PARAGRAPH_CHARS: int = 20
# 본문으로 인정하는 최소 길이
MIN_CONTENT_CHARS: int = 200

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
_INLINE_WS = re.compile(r"[ \t\f\v ]+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n+")

# 텍스트 날짜 형식 ("October 19, 2026", "Oct 19, 2026 10:30 AM" 등)
_DATE_FORMATS: tuple[str, ...] = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%b. %d, %Y",
    "%B %d, %Y %I:%M %p",
    "%b %d, %Y %I:%M %p",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def to_lxml_tree(html: str) -> Any:
    """Parse raw HTML into an lxml tree for XPath evaluation."""
    cleaned = _XML_DECLARATION.sub("", html or "", count=1)
    if not cleaned.strip():
        cleaned = "<html></html>"
    try:
        return lxml_html.fromstring(cleaned)
    except (etree.ParserError, ValueError):
        return lxml_html.fromstring("<html></html>")


def split_selectors(selector_list: str | None) -> list[str]:
    """Split a comma-separated fallback list into individual selectors."""
    if not selector_list:
        return []
    return [s.strip() for s in selector_list.split(",") if s.strip()]


def safe_select(root: BeautifulSoup | Tag, selector: str) -> list[Tag]:
    """``root.select`` that treats an invalid selector as matching nothing."""
    try:
        return root.select(selector)
    except (SelectorSyntaxError, ValueError, NotImplementedError) as exc:
        logger.debug("Invalid CSS selector %r: %s", selector, exc)
        return []


def safe_select_one(root: BeautifulSoup | Tag, selector: str) -> Tag | None:
    matches = safe_select(root, selector)
    return matches[0] if matches else None


def normalize_inline(text: str | None) -> str:
    """Collapse all whitespace runs to single spaces."""
    return " ".join((text or "").split())


def clean_text(text: str | None) -> str:
    """Normalize whitespace while keeping paragraph breaks."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = []
    for block in _PARAGRAPH_BREAK.split(text):
        lines = [_INLINE_WS.sub(" ", line).strip() for line in block.split("\n")]
        joined = " ".join(line for line in lines if line)
        if joined:
            paragraphs.append(joined)
    return "\n\n".join(paragraphs)


def element_text(el: Tag | None) -> str:
    if el is None:
        return ""
    return normalize_inline(el.get_text(" ", strip=True))


def without_boilerplate(el: Tag | BeautifulSoup) -> Tag | BeautifulSoup:
    """Return a copy of ``el`` with script/style/nav/footer/ad/share elements removed."""
    clone = copy.copy(el)
    for junk in safe_select(clone, BOILERPLATE_SELECTOR):
        junk.decompose()
    return clone


def paragraph_texts(el: Tag, min_chars: int = MIN_PARAGRAPH_CHARS) -> list[str]:
    """Texts of the ``<p>`` descendants of ``el`` longer than ``min_chars``."""
    texts = []
    for p in el.find_all("p"):
        text = element_text(p)
        if len(text) > min_chars:
            texts.append(text)
    return texts


def content_from_element(el: Tag) -> str:
    """Body text of a content container.

    Paragraphs are joined with blank lines; containers without usable
    paragraphs fall back to their whole text.
    """
    cleaned = without_boilerplate(el)
    if cleaned.name == "p":
        return element_text(cleaned)
    paragraphs = paragraph_texts(cleaned)
    if paragraphs:
        return "\n\n".join(paragraphs)
    return clean_text(cleaned.get_text("\n", strip=True))


def is_clean_title(text: str) -> bool:
    """Article titles are longer than 10 chars and carry no site-name separator."""
    return len(text) > 10 and "|" not in text and " - " not in text


def parse_publish_time(value: str | None) -> datetime | None:
    """Parse an ISO-8601, RFC-822 or common English date string.

    Naive results are assumed to be UTC.
    """
    if not value:
        return None
    raw = normalize_inline(value)
    if not raw:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        pass

    if parsed is None:
        try:
            parsed = parsedate_to_datetime(raw)
        except (TypeError, ValueError, IndexError):
            parsed = None

    if parsed is None:
        candidate = re.sub(r"\s+(UTC|GMT|ET|EST|EDT)$", "", raw, flags=re.IGNORECASE)
        candidate = re.sub(r"^(Published|Updated)\s*:?\s*", "", candidate, flags=re.IGNORECASE)
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(candidate, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def publish_time_from_element(el: Tag | None) -> datetime | None:
    """Read a timestamp from ``datetime``/``content`` attributes or element text."""
    if el is None:
        return None
    for attr in ("datetime", "content", "data-timestamp"):
        value = el.get(attr)
        if isinstance(value, str) and value.strip():
            parsed = parse_publish_time(value)
            if parsed is not None:
                return parsed
    return parse_publish_time(element_text(el))
