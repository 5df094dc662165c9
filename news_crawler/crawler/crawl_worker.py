"""
Crawl workers: pull ``crawl-news`` jobs, crawl the listing page, ingest articles.
"""

from __future__ import annotations

import asyncio
from typing import Any

from news_crawler.crawler.exceptions import FetchError
from news_crawler.crawler.fetcher import Fetcher
from news_crawler.crawler.job_queue import Job, JobQueue
from news_crawler.crawler.link_extractor import extract_article_links
from news_crawler.crawler.news_ingest import NewsIngestor
from news_crawler.extraction.html_utils import parse_html
from news_crawler.utils.config import Settings, get_settings
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

_POLL_TIMEOUT: float = 1.0
_SHUTDOWN_TIMEOUT: float = 30.0
_QUEUE_ERROR_BACKOFF: float = 2.0


class CrawlWorker:
    """Processes one listing-page job at a time."""

    def __init__(
        self,
        queue: JobQueue,
        fetcher: Fetcher,
        ingestor: NewsIngestor,
        settings: Settings | None = None,
        name: str = "worker-1",
    ) -> None:
        self._queue = queue
        self._fetcher = fetcher
        self._ingestor = ingestor
        self._settings = settings or get_settings()
        self.name = name

    async def process_job(self, job: Job) -> dict[str, Any]:
        """Crawl one listing page and ingest up to ``max_articles_per_crawl`` articles.

        Fatal fetch errors end the job quietly. Transient ones that survive
        the fetcher's own retries propagate so the queue can retry the job.
        """
        source = job.data["source"]
        url = job.data["url"]
        logger.info("[%s] Processing crawl job %s: %s", source, job.id, url)

        try:
            html = await self._fetcher.fetch(url, source)
        except FetchError as exc:
            if exc.fatal:
                logger.warning("[%s] Skipping listing page (%s): %s", source, exc.kind, url)
                return {"source": source, "links": 0, "saved": 0, "skipped": exc.kind}
            raise

        links = extract_article_links(parse_html(html), source, url)
        batch = links[: self._settings.max_articles_per_crawl]

        saved = 0
        for index, article_url in enumerate(batch):
            try:
                news = await self._ingestor.process_article(article_url, source)
                if news is not None:
                    saved += 1
            except Exception as e:
                logger.error("[%s] Error processing article %s: %s", source, article_url, e, exc_info=True)
            if index < len(batch) - 1:
                await asyncio.sleep(self._settings.article_delay_seconds)

        logger.info("[%s] Crawl finished: %d links, %d processed, %d saved", source, len(links), len(batch), saved)
        return {"source": source, "links": len(links), "saved": saved}

    async def run(self, stop_event: asyncio.Event) -> None:
        """Pull and process jobs until ``stop_event`` is set.

        Queue errors (e.g. a Redis outage) are logged and retried after a
        short pause; they never end the worker.
        """
        logger.info("[%s] started", self.name)
        while not stop_event.is_set():
            try:
                fetched = await self._queue.fetch_next(timeout=_POLL_TIMEOUT)
            except Exception as e:
                logger.error("[%s] Failed to fetch next job: %s", self.name, e, exc_info=True)
                await self._pause(stop_event)
                continue
            if fetched is None:
                continue

            job, raw = fetched
            try:
                await self.process_job(job)
            except Exception as e:
                logger.error("[%s] Job %s failed: %s", self.name, job.id, e, exc_info=True)
                await self._settle(job, raw, stop_event, reason=str(e))
            else:
                await self._settle(job, raw, stop_event)
        logger.info("[%s] stopped", self.name)

    async def _settle(
        self, job: Job, raw: str, stop_event: asyncio.Event, reason: str | None = None
    ) -> None:
        """Mark ``job`` completed, or failed with ``reason``.

        If the queue is unreachable the job stays in the active list and is
        requeued by ``requeue_active`` on the next pool start.
        """
        try:
            if reason is None:
                await self._queue.complete(job, raw)
            else:
                await self._queue.fail(job, raw, reason)
        except Exception as e:
            logger.error("[%s] Could not settle job %s: %s", self.name, job.id, e, exc_info=True)
            await self._pause(stop_event)

    @staticmethod
    async def _pause(stop_event: asyncio.Event) -> None:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=_QUEUE_ERROR_BACKOFF)
        except asyncio.TimeoutError:
            pass


class WorkerPool:
    """Runs ``concurrency`` workers sharing one queue."""

    def __init__(
        self,
        queue: JobQueue,
        fetcher: Fetcher,
        ingestor: NewsIngestor,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._queue = queue
        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []
        self.workers = [
            CrawlWorker(queue, fetcher, ingestor, self._settings, name=f"worker-{i + 1}")
            for i in range(max(1, self._settings.worker_concurrency))
        ]

    async def start(self) -> None:
        """Requeue jobs left active by a previous run, then spawn the workers."""
        requeued = await self._queue.requeue_active()
        counts = await self._queue.counts()
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(worker.run(self._stop_event), name=worker.name)
            for worker in self.workers
        ]
        logger.info(
            "WorkerPool started with %d workers (%d stalled jobs requeued, queue: %s)",
            len(self.workers),
            requeued,
            counts,
        )

    async def stop(self, timeout: float = _SHUTDOWN_TIMEOUT) -> None:
        """Signal workers to stop and wait for in-flight jobs; cancel stragglers."""
        self._stop_event.set()
        if not self._tasks:
            return
        done, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("WorkerPool: cancelled %d workers after %.0fs", len(pending), timeout)
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info("WorkerPool stopped")
