"""
Extraction entry point used by the crawl worker.

Builds the per-URL context (parsed document, strategies, LLM handle) and
runs it through the chain.
"""

from dataclasses import dataclass

from news_crawler.analysis.llm_extractor import LLMExtractor
from news_crawler.extraction.chain import ExtractionChain
from news_crawler.extraction.html_utils import parse_html
from news_crawler.extraction.methods import (
    CssSelectorMethod,
    GenericCssMethod,
    LlmMethod,
    ReadabilityMethod,
    TemplateMethod,
    XPathMethod,
)
from news_crawler.extraction.models import ExtractedContent, ExtractionContext
from news_crawler.extraction.strategies import GENERIC_STRATEGY, get_strategy
from news_crawler.extraction.template_generator import TemplateGenerator
from news_crawler.extraction.template_store import TemplateStore
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ExtractionResult:
    content: ExtractedContent
    used_strategy: str


def build_chain(store: TemplateStore, generator: TemplateGenerator) -> ExtractionChain:
    return ExtractionChain(
        [
            TemplateMethod(store, generator),
            CssSelectorMethod(),
            XPathMethod(),
            GenericCssMethod(),
            ReadabilityMethod(),
            LlmMethod(),
        ]
    )


class ExtractionService:
    def __init__(
        self,
        store: TemplateStore,
        llm: LLMExtractor | None = None,
        chain: ExtractionChain | None = None,
    ) -> None:
        self._llm = llm
        self._chain = chain or build_chain(store, TemplateGenerator(llm))

    @property
    def chain(self) -> ExtractionChain:
        return self._chain

    def build_context(self, url: str, html: str, source: str) -> ExtractionContext:
        return ExtractionContext(
            doc=parse_html(html),
            url=url,
            html=html,
            source=source,
            source_strategy=get_strategy(source),
            generic_strategy=GENERIC_STRATEGY,
            llm=self._llm,
        )

    async def extract(self, url: str, html: str, source: str) -> ExtractionResult | None:
        """Extract article fields from already-fetched HTML.

        Returns None when every method in the chain misses.
        """
        context = self.build_context(url, html, source)
        content = await self._chain.execute(context)
        if content is None:
            return None
        logger.info(
            "[%s] Extracted %r via %s (%d chars)",
            source,
            content.title[:60],
            context.used_strategy,
            len(content.full_text),
        )
        return ExtractionResult(content=content, used_strategy=context.used_strategy or "")
