"""
고정 주기 크롤링 스케줄러.

시작 시 한 번, 이후 ``crawl_interval_seconds`` (기본 5분)마다
활성화된 모든 소스의 리스트 페이지를 ``crawl-news`` 큐에 넣는다.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from news_crawler.crawler.job_queue import (
    DEFAULT_REMOVE_ON_COMPLETE,
    DEFAULT_REMOVE_ON_FAIL,
    JobQueue,
)
from news_crawler.crawler.sources_config import NEWS_SOURCES, NewsSource, get_enabled_sources
from news_crawler.utils.config import Settings, get_settings
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

CRAWL_JOB_NAME: str = "crawl-source"


class CrawlScheduler:
    """소스별 크롤링 작업을 주기적으로 큐에 넣는 스케줄러이다."""

    def __init__(
        self,
        queue: JobQueue,
        settings: Settings | None = None,
        sources: list[NewsSource] | None = None,
    ) -> None:
        self._queue = queue
        self._settings = settings or get_settings()
        self._sources = sources if sources is not None else get_enabled_sources()
        self._last_enqueue_times: dict[str, datetime] = {}
        logger.info(
            "CrawlScheduler 초기화 완료 | sources=%s | interval=%ds",
            [s.value for s in self._sources],
            self._settings.crawl_interval_seconds,
        )

    async def schedule_all(self) -> int:
        """모든 소스의 크롤링 작업을 큐에 넣는다.

        Returns:
            큐에 넣은 작업 수.
        """
        enqueued = 0
        for source in self._sources:
            url = NEWS_SOURCES[source]["listing_url"]
            try:
                await self._queue.add(
                    CRAWL_JOB_NAME,
                    {"source": source.value, "url": url},
                    attempts=self._settings.job_max_attempts,
                    backoff_seconds=self._settings.job_backoff_seconds,
                    remove_on_complete=DEFAULT_REMOVE_ON_COMPLETE,
                    remove_on_fail=DEFAULT_REMOVE_ON_FAIL,
                )
            except Exception as e:
                logger.error("작업 등록 실패 (source=%s): %s", source.value, e, exc_info=True)
                continue
            self._last_enqueue_times[source.value] = datetime.now(tz=timezone.utc)
            enqueued += 1
        logger.info("크롤링 작업 %d건 등록", enqueued)
        return enqueued

    async def run(self, stop_event: asyncio.Event) -> None:
        """``stop_event`` 가 설정될 때까지 주기적으로 작업을 등록한다."""
        interval = self._settings.crawl_interval_seconds
        while not stop_event.is_set():
            await self.schedule_all()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
        logger.info("CrawlScheduler 종료")

    def get_schedule_info(self) -> dict[str, Any]:
        """소스별 마지막 등록 시각 등 스케줄 상태를 반환한다."""
        now_utc = datetime.now(tz=timezone.utc)
        last_enqueues = {
            key: f"{(now_utc - dt).total_seconds():.0f}s ago"
            for key, dt in self._last_enqueue_times.items()
        }
        return {
            "interval_seconds": self._settings.crawl_interval_seconds,
            "sources": [s.value for s in self._sources],
            "utc_time": now_utc.strftime("%Y-%m-%d %H:%M:%S UTC"),
            "last_enqueues": last_enqueues,
        }
