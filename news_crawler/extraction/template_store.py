"""
Versioned extraction template store.

Templates live in the ``extraction_templates`` table and are cached in Redis
under ``extraction_template:{source}`` for seven days. Reads are cache-aside,
saves are write-through, and counter updates invalidate the cache entry so
the next read picks up the fresh row.
"""

from datetime import datetime, timezone

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from news_crawler.db.connection import session_scope
from news_crawler.db.models import ExtractionTemplateRecord
from news_crawler.extraction.models import ExtractionTemplate
from news_crawler.utils.config import get_settings
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

CACHE_KEY_PREFIX: str = "extraction_template:"


def cache_key(source: str) -> str:
    return f"{CACHE_KEY_PREFIX}{source}"


class TemplateStore:
    """Cache-aside access to the active template of each source."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: aioredis.Redis,
        cache_ttl: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis
        self._cache_ttl = cache_ttl or get_settings().template_cache_ttl_seconds

    async def get_template(self, source: str) -> ExtractionTemplate | None:
        """Return the active template for ``source``.

        Checks Redis first; on a miss loads the highest-version active row
        and caches it. Storage errors are logged and reported as no template.
        """
        key = cache_key(source)
        try:
            cached = await self._redis.get(key)
            if cached:
                logger.debug("Template cache hit for %s", source)
                return ExtractionTemplate.model_validate_json(cached)

            logger.debug("Template cache miss for %s, querying database", source)
            async with session_scope(self._session_factory) as session:
                row = await self._active_row(session, source)
                if row is None:
                    logger.debug("No active template in database for %s", source)
                    return None
                template = ExtractionTemplate.model_validate(row)

            await self._redis.setex(key, self._cache_ttl, template.model_dump_json())
            logger.debug("Loaded template v%d for %s from database", template.version, source)
            return template
        except (RedisError, SQLAlchemyError, ValidationError) as exc:
            logger.error("Error getting template for %s: %s", source, exc, exc_info=True)
            return None

    async def save_template(self, template: ExtractionTemplate) -> None:
        """Persist ``template`` as a new row, then write it to the cache."""
        async with session_scope(self._session_factory) as session:
            session.add(_to_record(template))

        await self._redis.setex(
            cache_key(template.source), self._cache_ttl, template.model_dump_json()
        )
        logger.info("Saved template for %s (version %d)", template.source, template.version)

    async def increment_success(self, source: str) -> None:
        await self._increment(source, success=True)

    async def increment_fail(self, source: str) -> None:
        await self._increment(source, success=False)

    async def _increment(self, source: str, success: bool) -> None:
        try:
            async with session_scope(self._session_factory) as session:
                row = await self._active_row(session, source)
                if row is None:
                    return
                if success:
                    row.success_count += 1
                    row.last_used_at = datetime.now(timezone.utc)
                else:
                    row.fail_count += 1
            await self._redis.delete(cache_key(source))
        except (RedisError, SQLAlchemyError) as exc:
            logger.error(
                "Error incrementing %s count for %s: %s",
                "success" if success else "fail",
                source,
                exc,
                exc_info=True,
            )

    async def regenerate_template(
        self, source: str, new_template: ExtractionTemplate
    ) -> ExtractionTemplate:
        """Deactivate the current template and store ``new_template`` as the next version.

        Returns the stored template (version = previous max + 1, counters reset).
        """
        async with session_scope(self._session_factory) as session:
            await session.execute(
                update(ExtractionTemplateRecord)
                .where(
                    ExtractionTemplateRecord.source == source,
                    ExtractionTemplateRecord.is_active.is_(True),
                )
                .values(is_active=False)
            )
            latest = await session.scalar(
                select(func.max(ExtractionTemplateRecord.version)).where(
                    ExtractionTemplateRecord.source == source
                )
            )

        stored = new_template.model_copy(
            update={
                "source": source,
                "version": (latest or 0) + 1,
                "is_active": True,
                "success_count": 0,
                "fail_count": 0,
                "last_used_at": None,
            }
        )
        await self.save_template(stored)
        logger.info("Regenerated template for %s (version %d)", source, stored.version)
        return stored

    @staticmethod
    async def _active_row(
        session: AsyncSession, source: str
    ) -> ExtractionTemplateRecord | None:
        result = await session.execute(
            select(ExtractionTemplateRecord)
            .where(
                ExtractionTemplateRecord.source == source,
                ExtractionTemplateRecord.is_active.is_(True),
            )
            .order_by(ExtractionTemplateRecord.version.desc(), ExtractionTemplateRecord.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


def _to_record(template: ExtractionTemplate) -> ExtractionTemplateRecord:
    return ExtractionTemplateRecord(
        source=template.source,
        version=template.version,
        title_selector=template.title_selector,
        summary_selector=template.summary_selector,
        content_selector=template.content_selector,
        publish_time_selector=template.publish_time_selector,
        xpath_title=template.xpath_title,
        xpath_content=template.xpath_content,
        is_active=template.is_active,
        success_count=template.success_count,
        fail_count=template.fail_count,
        last_used_at=template.last_used_at,
    )
