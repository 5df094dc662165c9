"""
Chain of extraction methods.

Methods are sorted by priority once, at construction. ``execute`` walks the
list and returns the first complete result; a method that raises is logged
and treated as a miss.
"""

from news_crawler.crawler.exceptions import ExtractionMethodError
from news_crawler.extraction.methods import ExtractionMethod
from news_crawler.extraction.models import ExtractedContent, ExtractionContext
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)


class ExtractionChain:
    def __init__(self, methods: list[ExtractionMethod]) -> None:
        self._methods: tuple[ExtractionMethod, ...] = tuple(
            sorted(methods, key=lambda m: m.priority)
        )

    @property
    def methods(self) -> tuple[ExtractionMethod, ...]:
        return self._methods

    async def execute(self, context: ExtractionContext) -> ExtractedContent | None:
        """Run methods in priority order; None when every method misses."""
        for method in self._methods:
            if not method.can_execute(context):
                logger.debug("Skipping %s (cannot execute)", method.name)
                continue

            try:
                result = await method.execute(context)
            except ExtractionMethodError as exc:
                logger.debug("%s missed for %s: %s", method.name, context.url, exc)
                continue
            except Exception as exc:
                logger.warning(
                    "Error executing %s for %s: %s", method.name, context.url, exc, exc_info=True
                )
                continue

            if result is not None and result.is_complete:
                if not context.used_strategy:
                    context.used_strategy = method.name
                logger.debug("Extraction succeeded using %s (%s)", method.name, context.used_strategy)
                return result

        logger.warning("All extraction methods failed for: %s", context.url)
        return None
