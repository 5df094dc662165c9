"""
Extraction methods run by the chain, cheapest first.

| priority | method       | runs when                          |
|----------|--------------|------------------------------------|
| 0        | template     | always                             |
| 1        | css-selector | always                             |
| 2        | xpath        | a source-specific strategy exists  |
| 3        | generic-css  | a source-specific strategy exists  |
| 4        | readability  | always                             |
| 5        | llm          | an LLM client is configured        |

Every method returns a complete ``ExtractedContent`` or None and records
its label in ``context.used_strategy`` on success.
"""

from bs4 import BeautifulSoup

from news_crawler.crawler.exceptions import ExtractionMethodError
from news_crawler.extraction.html_utils import (
    MIN_CONTENT_CHARS,
    content_from_element,
    element_text,
    is_clean_title,
    normalize_inline,
    publish_time_from_element,
    safe_select_one,
    split_selectors,
)
from news_crawler.extraction.models import ExtractedContent, ExtractionContext, ExtractionTemplate
from news_crawler.extraction.strategies.base import evaluate_xpath, xpath_content_text
from news_crawler.extraction.strategies.generic import GenericStrategy
from news_crawler.extraction.template_generator import TemplateGenerator
from news_crawler.extraction.template_store import TemplateStore
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# 템플릿 재생성 조건
REGENERATE_FAIL_RATIO: float = 0.5
REGENERATE_MIN_FAILS: int = 5


class ExtractionMethod:
    """One link of the extraction chain."""

    name: str = ""
    priority: int = 0

    def can_execute(self, context: ExtractionContext) -> bool:
        return True

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} priority={self.priority}>"


def _complete(result: ExtractedContent | None) -> ExtractedContent | None:
    return result if result is not None and result.is_complete else None


# ── Template ──────────────────────────────────────────────────


def extract_with_template(
    doc: BeautifulSoup,
    template: ExtractionTemplate,
    context: ExtractionContext | None = None,
) -> ExtractedContent | None:
    """Apply a template's selector lists to a page.

    CSS selectors are tried first; the template's XPath expressions fill in
    a missing title or body when ``context`` provides an lxml tree.
    """
    title = ""
    for selector in split_selectors(template.title_selector):
        text = element_text(safe_select_one(doc, selector))
        if text and is_clean_title(text):
            title = text
            break

    summary = ""
    for selector in split_selectors(template.summary_selector):
        summary = element_text(safe_select_one(doc, selector))
        if summary:
            break

    full_text = ""
    for selector in split_selectors(template.content_selector):
        el = safe_select_one(doc, selector)
        if el is None:
            continue
        content = content_from_element(el)
        if len(content) > MIN_CONTENT_CHARS:
            full_text = content
            break
        if len(content) > len(full_text):
            full_text = content

    if context is not None and (not title or not full_text):
        if not title and template.xpath_title:
            values = evaluate_xpath(context.tree, template.xpath_title)
            if values:
                node = values[0]
                text = normalize_inline(
                    node.text_content() if hasattr(node, "text_content") else str(node)
                )
                if is_clean_title(text):
                    title = text
        if not full_text and template.xpath_content:
            full_text = xpath_content_text(context.tree, [template.xpath_content])

    publish_time = None
    for selector in split_selectors(template.publish_time_selector):
        publish_time = publish_time_from_element(safe_select_one(doc, selector))
        if publish_time is not None:
            break

    if not title or not full_text:
        return None
    return ExtractedContent(
        title=title,
        full_text=full_text,
        summary=summary or None,
        publish_time=publish_time,
    )


def needs_regeneration(template: ExtractionTemplate) -> bool:
    """True when more than half of the uses failed and at least five failed."""
    return (
        template.fail_ratio > REGENERATE_FAIL_RATIO
        and template.fail_count >= REGENERATE_MIN_FAILS
    )


class TemplateMethod(ExtractionMethod):
    """Stored, self-scoring template for the source; generated on first use."""

    name = "template"
    priority = 0

    def __init__(self, store: TemplateStore, generator: TemplateGenerator) -> None:
        self._store = store
        self._generator = generator

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        source = context.source
        template = await self._store.get_template(source)

        if template is None:
            logger.debug("No template for %s, generating", source)
            template = await self._generator.generate_template(source, context.html, context.url)
            if template is None:
                logger.debug("Template generation failed for %s, skipping template method", source)
                return None
            await self._store.save_template(template)
            logger.info("Generated and saved template for %s (version %d)", source, template.version)
        else:
            logger.debug("Using template v%d for %s", template.version, source)

        result = _complete(extract_with_template(context.doc, template, context))
        if result is not None:
            await self._store.increment_success(source)
            context.used_strategy = f"template-v{template.version}"
            return result

        await self._store.increment_fail(source)
        logger.debug("Template v%d extraction failed for %s: %s", template.version, source, context.url)

        if not needs_regeneration(template):
            return None

        logger.warning(
            "Template for %s has high fail rate (%.1f%%, %d/%d), regenerating",
            source,
            template.fail_ratio * 100,
            template.fail_count,
            template.total_uses,
        )
        candidate = await self._generator.generate_template(source, context.html, context.url)
        if candidate is None:
            return None
        regenerated = await self._store.regenerate_template(source, candidate)

        result = _complete(extract_with_template(context.doc, regenerated, context))
        if result is None:
            return None
        await self._store.increment_success(source)
        context.used_strategy = f"template-v{regenerated.version}"
        return result


# ── Hand-written strategies ──────────────────────────────────


class CssSelectorMethod(ExtractionMethod):
    name = "css-selector"
    priority = 1

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        result = _complete(context.source_strategy.extract_with_selector(context.doc, context.url))
        if result is not None:
            context.used_strategy = f"{context.source_strategy_name}-selector"
        return result


class XPathMethod(ExtractionMethod):
    name = "xpath"
    priority = 2

    def can_execute(self, context: ExtractionContext) -> bool:
        return context.has_source_strategy

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        logger.debug("CSS selectors failed for %s, trying XPath: %s", context.source, context.url)
        result = _complete(
            context.source_strategy.extract_with_xpath(context.doc, context.url, context.tree)
        )
        if result is not None:
            context.used_strategy = f"{context.source_strategy_name}-xpath"
        return result


class GenericCssMethod(ExtractionMethod):
    """Generic selectors, only after a source-specific strategy has failed."""

    name = "generic-css"
    priority = 3

    def can_execute(self, context: ExtractionContext) -> bool:
        return context.has_source_strategy

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        result = _complete(context.generic_strategy.extract_with_selector(context.doc, context.url))
        if result is not None:
            context.used_strategy = "generic-selector-fallback"
        return result


class ReadabilityMethod(ExtractionMethod):
    name = "readability"
    priority = 4

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        generic = context.generic_strategy
        if not isinstance(generic, GenericStrategy):
            raise ExtractionMethodError(f"{generic!r} has no readability heuristic")
        result = _complete(generic.extract_readability(context.doc, context.url))
        if result is not None:
            context.used_strategy = "readability-algorithm"
        return result


class LlmMethod(ExtractionMethod):
    name = "llm"
    priority = 5

    def can_execute(self, context: ExtractionContext) -> bool:
        return context.llm is not None and context.llm.is_enabled

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        logger.debug("Selector methods failed, trying LLM extraction: %s", context.url)
        result = _complete(await context.llm.extract_from_html(context.url, context.html))
        if result is None:
            logger.warning("LLM failed to extract content for %s", context.url)
            return None
        context.used_strategy = "llm"
        logger.info("LLM extracted content for %s", context.url)
        return result
