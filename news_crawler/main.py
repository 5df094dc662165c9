"""
News Crawler Service - Main Entry Point

주요 기능:
- 인프라 초기화 (DB, Redis, Fetcher, LLM 클라이언트)
- 5분 주기 소스별 크롤링 작업 등록 (CrawlScheduler)
- 작업 큐 소비 워커 풀 (CrawlWorker x N)
- Graceful shutdown 처리 (SIGINT / SIGTERM)
"""

from __future__ import annotations

import asyncio
import signal

from dotenv import load_dotenv

# .env 값을 os.environ에 로드
load_dotenv()

from news_crawler.analysis.claude_client import ClaudeClient
from news_crawler.analysis.llm_extractor import LLMExtractor
from news_crawler.crawler.crawl_scheduler import CrawlScheduler
from news_crawler.crawler.crawl_worker import WorkerPool
from news_crawler.crawler.fetcher import Fetcher
from news_crawler.crawler.job_queue import JobQueue
from news_crawler.crawler.news_ingest import NewsIngestor
from news_crawler.db.connection import close_db, get_redis, get_session_factory, init_db
from news_crawler.extraction.service import ExtractionService
from news_crawler.extraction.template_store import TemplateStore
from news_crawler.utils.config import get_settings
from news_crawler.utils.logger import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

_SHUTDOWN_TIMEOUT: float = 60.0


class CrawlerService:
    """크롤러 서비스의 모든 구성 요소를 소유하고 수명 주기를 관리한다."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.stop_event = asyncio.Event()
        self.fetcher: Fetcher | None = None
        self.scheduler: CrawlScheduler | None = None
        self.pool: WorkerPool | None = None
        self.scheduler_task: asyncio.Task | None = None

    async def initialize(self) -> None:
        """DB/Redis 연결과 크롤링 파이프라인을 구성한다."""
        logger.info("========== News Crawler Starting ==========")
        await init_db()

        redis = get_redis()
        session_factory = get_session_factory()

        client = ClaudeClient()
        llm = LLMExtractor(client) if client.is_enabled else None
        if llm is None:
            logger.warning("ANTHROPIC_API_KEY 미설정: 템플릿 생성/LLM 추출 단계를 건너뛴다")

        self.fetcher = Fetcher(self.settings)
        store = TemplateStore(session_factory, redis)
        extraction = ExtractionService(store, llm=llm)
        ingestor = NewsIngestor(session_factory, redis, self.fetcher, extraction, llm=llm)

        queue = JobQueue(redis)
        self.scheduler = CrawlScheduler(queue, self.settings)
        self.pool = WorkerPool(queue, self.fetcher, ingestor, self.settings)
        logger.info("All modules initialized successfully.")

    async def start(self) -> None:
        assert self.pool is not None and self.scheduler is not None
        await self.pool.start()
        self.scheduler_task = asyncio.create_task(
            self.scheduler.run(self.stop_event), name="crawl-scheduler"
        )

    async def shutdown(self) -> None:
        """워커 풀, 브라우저, HTTP 세션, DB/Redis 연결을 순서대로 닫는다."""
        logger.info("========== News Crawler Shutting Down ==========")
        self.stop_event.set()

        if self.scheduler_task is not None and not self.scheduler_task.done():
            try:
                await self.scheduler_task
            except Exception as exc:
                logger.warning("스케줄러 종료 중 오류: %s", exc)

        if self.pool is not None:
            await self.pool.stop()

        if self.fetcher is not None:
            try:
                await self.fetcher.close()
            except Exception as exc:
                logger.warning("Fetcher 종료 실패: %s", exc)

        await close_db()
        logger.info("Shutdown complete.")


async def main() -> None:
    """메인 진입점. 종료 신호를 받을 때까지 크롤링을 계속한다."""
    service = CrawlerService()
    shutdown_event = asyncio.Event()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal %s, initiating graceful shutdown...", sig)
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

    try:
        await service.initialize()
        await service.start()
        await shutdown_event.wait()
    except Exception as e:
        logger.exception("Fatal error in main: %s", e)
    finally:
        logger.info("Running shutdown sequence (timeout=%.0fs)...", _SHUTDOWN_TIMEOUT)
        try:
            await asyncio.wait_for(service.shutdown(), timeout=_SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Shutdown timed out after %.0f seconds, forcing exit.", _SHUTDOWN_TIMEOUT)
        except Exception as exc:
            logger.error("Error during shutdown: %s", exc)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
