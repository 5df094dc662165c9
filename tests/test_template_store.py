"""
Tests for the cached, versioned template store (SQLite + in-memory Redis).
"""

import pytest
from sqlalchemy import func, select

from news_crawler.db.connection import session_scope
from news_crawler.db.models import ExtractionTemplateRecord
from news_crawler.extraction.models import ExtractionTemplate
from news_crawler.extraction.template_store import TemplateStore, cache_key


def _template(**overrides) -> ExtractionTemplate:
    values = {
        "source": "cointelegraph",
        "title_selector": ".post__title, h1",
        "content_selector": ".post__text",
        "publish_time_selector": "time[datetime]",
    }
    values.update(overrides)
    return ExtractionTemplate(**values)


@pytest.fixture
def store(session_factory, fake_redis):
    return TemplateStore(session_factory, fake_redis, cache_ttl=600)


async def _rows(session_factory, source="cointelegraph"):
    async with session_scope(session_factory) as session:
        result = await session.execute(
            select(ExtractionTemplateRecord)
            .where(ExtractionTemplateRecord.source == source)
            .order_by(ExtractionTemplateRecord.version)
        )
        return list(result.scalars())


# ============================================================
# TEST: READ PATH
# ============================================================

class TestGetTemplate:

    @pytest.mark.asyncio
    async def test_missing_template(self, store):
        assert await store.get_template("cointelegraph") is None

    @pytest.mark.asyncio
    async def test_save_writes_row_and_cache(self, store, fake_redis, session_factory):
        await store.save_template(_template())

        assert cache_key("cointelegraph") == "extraction_template:cointelegraph"
        assert await fake_redis.get(cache_key("cointelegraph")) is not None
        assert len(await _rows(session_factory)) == 1

    @pytest.mark.asyncio
    async def test_cache_miss_loads_from_database(self, store, fake_redis):
        await store.save_template(_template())
        await fake_redis.delete(cache_key("cointelegraph"))

        template = await store.get_template("cointelegraph")

        assert template.title_selector == ".post__title, h1"
        assert template.version == 1
        # repopulated
        assert await fake_redis.get(cache_key("cointelegraph")) is not None

    @pytest.mark.asyncio
    async def test_concurrent_first_versions_latest_write_wins(self, store, fake_redis, session_factory):
        # two workers generated a first template for the same source
        await store.save_template(_template(title_selector="h1.first"))
        await store.save_template(_template(title_selector="h1.second"))
        await fake_redis.delete(cache_key("cointelegraph"))

        template = await store.get_template("cointelegraph")
        await store.increment_success("cointelegraph")

        assert template.title_selector == "h1.second"
        rows = sorted(await _rows(session_factory), key=lambda r: r.id)
        assert [r.success_count for r in rows] == [0, 1]

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, store, fake_redis):
        cached = _template(title_selector="h1.cached")
        await fake_redis.setex(cache_key("cointelegraph"), 600, cached.model_dump_json())

        template = await store.get_template("cointelegraph")

        assert template.title_selector == "h1.cached"

    @pytest.mark.asyncio
    async def test_null_selectors_load_as_empty(self, store, session_factory):
        async with session_scope(session_factory) as session:
            session.add(
                ExtractionTemplateRecord(
                    source="reuters",
                    version=1,
                    title_selector="h1",
                    content_selector="article",
                    is_active=True,
                    success_count=0,
                    fail_count=0,
                )
            )

        template = await store.get_template("reuters")

        assert template.summary_selector == ""
        assert template.xpath_content == ""


# ============================================================
# TEST: COUNTERS
# ============================================================

class TestCounters:

    @pytest.mark.asyncio
    async def test_increment_success_invalidates_cache(self, store, fake_redis, session_factory):
        await store.save_template(_template())

        await store.increment_success("cointelegraph")

        assert await fake_redis.get(cache_key("cointelegraph")) is None
        row = (await _rows(session_factory))[0]
        assert row.success_count == 1
        assert row.last_used_at is not None

    @pytest.mark.asyncio
    async def test_increment_fail(self, store, session_factory):
        await store.save_template(_template())

        await store.increment_fail("cointelegraph")
        await store.increment_fail("cointelegraph")

        template = await store.get_template("cointelegraph")
        assert template.fail_count == 2
        assert template.success_count == 0

    @pytest.mark.asyncio
    async def test_increment_without_template_is_noop(self, store):
        await store.increment_fail("bloomberg")

        assert await store.get_template("bloomberg") is None


# ============================================================
# TEST: REGENERATION
# ============================================================

class TestRegenerate:

    @pytest.mark.asyncio
    async def test_regenerate_bumps_version_and_keeps_one_active(self, store, session_factory):
        await store.save_template(_template(success_count=3, fail_count=5))

        stored = await store.regenerate_template(
            "cointelegraph", _template(title_selector="h1.new-title", fail_count=9)
        )

        assert stored.version == 2
        assert stored.is_active is True
        assert stored.fail_count == 0 and stored.success_count == 0

        rows = await _rows(session_factory)
        assert [r.version for r in rows] == [1, 2]
        assert [r.is_active for r in rows] == [False, True]

        template = await store.get_template("cointelegraph")
        assert template.version == 2
        assert template.title_selector == "h1.new-title"

    @pytest.mark.asyncio
    async def test_regenerate_twice(self, store, session_factory):
        await store.save_template(_template())
        await store.regenerate_template("cointelegraph", _template())
        await store.regenerate_template("cointelegraph", _template())

        async with session_scope(session_factory) as session:
            active = await session.scalar(
                select(func.count())
                .select_from(ExtractionTemplateRecord)
                .where(ExtractionTemplateRecord.is_active.is_(True))
            )
        assert active == 1
        assert (await store.get_template("cointelegraph")).version == 3
