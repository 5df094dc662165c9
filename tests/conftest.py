"""
Shared fixtures: an in-memory Redis double and a throwaway SQLite database.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from news_crawler.db.models import Base
from news_crawler.utils.config import Settings


# ============================================================
# REDIS DOUBLE
# ============================================================

class InMemoryRedis:
    """Covers the subset of the ``redis.asyncio`` API the crawler uses
    (string values, lists, sorted sets, pub/sub publish)."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, float] = {}
        self.lists: dict[str, list[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.published: list[tuple[str, str]] = []

    # --- strings ---
    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.values[key] = value
        self.expiry[key] = time.time() + ttl
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            for store in (self.values, self.lists, self.zsets):
                if key in store:
                    del store[key]
                    removed += 1
        return removed

    async def incr(self, key: str) -> int:
        value = int(self.values.get(key, "0")) + 1
        self.values[key] = str(value)
        return value

    # --- pub/sub ---
    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    # --- lists ---
    async def lpush(self, key: str, *values: str) -> int:
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def llen(self, key: str) -> int:
        return len(self.lists.get(key, []))

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    async def lrem(self, key: str, count: int, value: str) -> int:
        items = self.lists.get(key, [])
        removed = 0
        while value in items and (count == 0 or removed < count):
            items.remove(value)
            removed += 1
        return removed

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        self.lists[key] = items[start:stop]
        return True

    async def lmove(
        self, first_list: str, second_list: str, src: str = "LEFT", dest: str = "RIGHT"
    ) -> str | None:
        return self._move(first_list, second_list, src, dest)

    async def blmove(
        self, first_list: str, second_list: str, timeout: float, src: str = "LEFT", dest: str = "RIGHT"
    ) -> str | None:
        value = self._move(first_list, second_list, src, dest)
        if value is None:
            # stand-in for blocking until the timeout
            await asyncio.sleep(min(timeout, 0.01))
        return value

    def _move(self, first_list: str, second_list: str, src: str, dest: str) -> str | None:
        items = self.lists.get(first_list, [])
        if not items:
            return None
        value = items.pop() if src == "RIGHT" else items.pop(0)
        target = self.lists.setdefault(second_list, [])
        if dest == "LEFT":
            target.insert(0, value)
        else:
            target.append(value)
        return value

    # --- sorted sets ---
    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def zrangebyscore(self, key: str, min: float, max: float) -> list[str]:
        zset = self.zsets.get(key, {})
        return [m for m, s in sorted(zset.items(), key=lambda kv: kv[1]) if min <= s <= max]

    async def zrem(self, key: str, *members: str) -> int:
        zset = self.zsets.get(key, {})
        removed = 0
        for member in members:
            if member in zset:
                del zset[member]
                removed += 1
        return removed

    async def zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    async def aclose(self) -> None:
        return None


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        anthropic_api_key="",
        crawl_interval_seconds=300,
        worker_concurrency=2,
        max_articles_per_crawl=10,
        article_delay_seconds=0.0,
        fetch_max_attempts=3,
        fetch_backoff_seconds=2.0,
        job_max_attempts=3,
        job_backoff_seconds=2.0,
    )


@pytest.fixture
async def session_factory(tmp_path) -> Any:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'crawler.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()
