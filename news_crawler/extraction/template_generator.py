"""
LLM-driven template synthesis.

The model proposes selector fallback lists for one article page; the result
is checked against that same page before it is handed back. A template
that does not find a clean title and a multi-paragraph body on its own
sample is discarded.
"""

from bs4 import BeautifulSoup

from news_crawler.analysis.llm_extractor import LLMExtractor
from news_crawler.analysis.prompts import REFERENCE_HINTS
from news_crawler.crawler.exceptions import TemplateGenerationError, TemplateValidationError
from news_crawler.crawler.sources_config import is_article_page
from news_crawler.extraction.html_utils import (
    element_text,
    is_clean_title,
    parse_html,
    safe_select,
    safe_select_one,
    split_selectors,
)
from news_crawler.extraction.models import ExtractionTemplate
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# 구조 샘플에 포함할 후보 요소
_TITLE_CANDIDATES: str = 'h1, .post__title, .article-title, [itemprop="headline"]'
_CONTENT_CANDIDATES: str = (
    'article, .post__text, .post-content, .article-content, [itemprop="articleBody"]'
)
_SAMPLE_LIMIT: int = 3
_SAMPLE_TEXT_CHARS: int = 50

# 본문 후보가 가져야 하는 최소 <p> 개수
MIN_CONTENT_PARAGRAPHS: int = 3


def extract_sample_structure(doc: BeautifulSoup) -> str:
    """Summarize candidate title/content elements (tag, classes, text prefix)."""
    lines: list[str] = []
    for el in safe_select(doc, _TITLE_CANDIDATES)[:_SAMPLE_LIMIT]:
        classes = " ".join(el.get("class", []))
        text = el.get_text(strip=True)[:_SAMPLE_TEXT_CHARS]
        lines.append(f'Title candidate: <{el.name} class="{classes}">{text}...</{el.name}>')
    for el in safe_select(doc, _CONTENT_CANDIDATES)[:_SAMPLE_LIMIT]:
        classes = " ".join(el.get("class", []))
        paragraphs = len(el.find_all("p"))
        lines.append(f'Content candidate: <{el.name} class="{classes}"> ({paragraphs} paragraphs)')
    return "\n".join(lines) or "No obvious article structure found"


def clean_title_selector(selector_list: str) -> str:
    """Drop bare ``title`` entries, which only ever match the page title."""
    kept = [
        s for s in split_selectors(selector_list)
        if s.lower() not in ("title", "head title", "head > title", "html > head > title")
    ]
    return ", ".join(kept)


def validate_template(doc: BeautifulSoup, title_selector: str, content_selector: str) -> None:
    """Check a template against its sample page.

    Raises:
        TemplateValidationError: no selector yields a clean title, or no
            selector hits an element with at least three paragraphs.
    """
    title_found = False
    for selector in split_selectors(title_selector):
        el = safe_select_one(doc, selector)
        # <title> never counts as the article headline
        if el is None or el.name == "title":
            continue
        if is_clean_title(element_text(el)):
            title_found = True
            break

    content_found = False
    for selector in split_selectors(content_selector):
        el = safe_select_one(doc, selector)
        if el is not None and len(el.find_all("p")) >= MIN_CONTENT_PARAGRAPHS:
            content_found = True
            break

    if not title_found:
        raise TemplateValidationError(
            f"title selector {title_selector!r} did not find a valid title"
        )
    if not content_found:
        raise TemplateValidationError(
            f"content selector {content_selector!r} did not find valid content"
        )


class TemplateGenerator:
    """Synthesizes and validates extraction templates with the LLM."""

    def __init__(self, llm: LLMExtractor | None) -> None:
        self._llm = llm

    @property
    def is_enabled(self) -> bool:
        return self._llm is not None and self._llm.is_enabled

    async def generate_template(
        self,
        source: str,
        html: str,
        url: str,
        use_reference_hints: bool = True,
    ) -> ExtractionTemplate | None:
        """Generate a validated template for ``source`` from one article page.

        Returns None when the LLM is off, the URL is not an article page,
        the response is unusable, or the template fails validation.
        """
        if not self.is_enabled:
            logger.debug("LLM disabled, skipping template generation for %s", source)
            return None

        if not is_article_page(url, source):
            logger.warning("Skipping template generation for %s: not an article page (%s)", source, url)
            return None

        doc = parse_html(html)
        try:
            template = await self._generate(source, html, url, doc, use_reference_hints)
        except TemplateValidationError as exc:
            logger.warning("Generated template for %s failed validation: %s", source, exc)
            return None
        except TemplateGenerationError as exc:
            logger.warning("Template generation failed for %s: %s", source, exc)
            return None

        logger.info("Generated and validated template for %s", source)
        return template

    async def _generate(
        self,
        source: str,
        html: str,
        url: str,
        doc: BeautifulSoup,
        use_reference_hints: bool,
    ) -> ExtractionTemplate:
        hints = REFERENCE_HINTS.get(source, "") if use_reference_hints else ""
        parsed = await self._llm.generate_selectors(
            source=source,
            url=url,
            html=html,
            sample_structure=extract_sample_structure(doc),
            reference_hints=hints,
        )
        if parsed is None:
            raise TemplateGenerationError("LLM returned no usable JSON")

        raw_title = str(parsed.get("titleSelector") or "")
        raw_content = str(parsed.get("contentSelector") or "")
        if not raw_title.strip() or not raw_content.strip():
            raise TemplateGenerationError("generated template is missing required selectors")

        title_selector = clean_title_selector(raw_title)
        if not title_selector:
            raise TemplateValidationError('title selector only contains the "title" tag')
        content_selector = ", ".join(split_selectors(raw_content))

        validate_template(doc, title_selector, content_selector)

        return ExtractionTemplate(
            source=source,
            version=1,
            title_selector=title_selector,
            summary_selector=", ".join(split_selectors(str(parsed.get("summarySelector") or ""))),
            content_selector=content_selector,
            publish_time_selector=", ".join(
                split_selectors(str(parsed.get("publishTimeSelector") or ""))
            ),
            xpath_title=str(parsed.get("xpathTitle") or "").strip(),
            xpath_content=str(parsed.get("xpathContent") or "").strip(),
        )
