"""
Per-article ingestion: dedup → fetch → extract → tickers → persist → publish.
"""

from datetime import datetime, timezone

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from news_crawler.analysis.llm_extractor import LLMExtractor
from news_crawler.crawler.events import NewsCreated, publish_news_created
from news_crawler.crawler.exceptions import PersistenceError
from news_crawler.crawler.fetcher import Fetcher
from news_crawler.db.connection import session_scope
from news_crawler.db.models import News
from news_crawler.extraction.models import ExtractedContent
from news_crawler.extraction.service import ExtractionService
from news_crawler.utils.logger import get_logger
from news_crawler.utils.ticker_mapping import extract_tickers

logger = get_logger(__name__)


class NewsIngestor:
    """Turns one article URL into at most one ``news`` row and one event."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: aioredis.Redis,
        fetcher: Fetcher,
        extraction: ExtractionService,
        llm: LLMExtractor | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis
        self._fetcher = fetcher
        self._extraction = extraction
        self._llm = llm

    async def exists(self, url: str) -> bool:
        async with session_scope(self._session_factory) as session:
            found = await session.scalar(select(News.id).where(News.url == url).limit(1))
        return found is not None

    async def resolve_tickers(self, content: ExtractedContent) -> list[str]:
        """Vocabulary match first; ask the LLM only when that finds nothing."""
        tickers = extract_tickers(f"{content.title}\n{content.full_text}")
        if not tickers and self._llm is not None:
            tickers = await self._llm.extract_tickers(content.title, content.full_text)
        return tickers

    async def process_article(self, url: str, source: str) -> News | None:
        """Ingest one article.

        Returns the stored row, or None when the URL was already stored or
        nothing could be extracted.

        Raises:
            FetchError: the page could not be fetched.
            PersistenceError: the row could not be written.
        """
        if await self.exists(url):
            logger.debug("[%s] Already stored, skipping: %s", source, url)
            return None

        html = await self._fetcher.fetch(url, source)
        result = await self._extraction.extract(url, html, source)
        if result is None:
            logger.warning("[%s] No content extracted from %s", source, url)
            return None

        content = result.content
        tickers = await self.resolve_tickers(content)

        news = await self._save(url, source, content, tickers)
        if news is None:
            return None

        logger.info(
            "[%s] Saved news %d (%s) tickers=%s", source, news.id, result.used_strategy, tickers
        )
        await self._publish(news)
        return news

    async def _save(
        self,
        url: str,
        source: str,
        content: ExtractedContent,
        tickers: list[str],
    ) -> News | None:
        news = News(
            title=content.title,
            summary=content.summary,
            full_text=content.full_text,
            tickers=tickers,
            source=source,
            publish_time=content.publish_time or datetime.now(timezone.utc),
            url=url,
        )
        try:
            async with session_scope(self._session_factory) as session:
                session.add(news)
                await session.flush()
        except IntegrityError:
            # 동시에 같은 URL을 처리한 다른 워커가 먼저 저장했다
            logger.info("[%s] Duplicate url on insert, skipping: %s", source, url)
            return None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to save news for {url}: {exc}") from exc
        return news

    async def _publish(self, news: News) -> None:
        event = NewsCreated(
            news_id=news.id,
            title=news.title,
            tickers=list(news.tickers or []),
            publish_time=news.publish_time,
            source=news.source,
        )
        try:
            await publish_news_created(self._redis, event)
        except RedisError as exc:
            logger.error("Failed to publish news_created for %d: %s", news.id, exc, exc_info=True)
